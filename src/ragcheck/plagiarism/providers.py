"""
Third-party plagiarism scanning providers.
"""

import asyncio
import base64
import os
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx

from ragcheck.exceptions import ProviderError
from ragcheck.utils.config import ProviderConfig
from ragcheck.utils.logging import get_logger

from .models import ExternalScanResult, MatchType, PlagiarismMatch

logger = get_logger(__name__)

COPYLEAKS_API_URL = "https://api.copyleaks.com"


class BaseScanProvider(ABC):
    """
    A scanning service that compares text against sources the engine
    cannot see (e.g. the public web).
    """

    name: str = "external"

    @abstractmethod
    async def scan(self, text: str) -> ExternalScanResult:
        """
        Scan text and return the provider's matches.

        Raises:
            ProviderError: If the provider cannot produce a result
        """
        pass


def locate_snippet(text: str, snippet: str) -> tuple[int, int]:
    """Find a snippet in text, case-insensitively; (0, 0) if absent."""
    snippet = snippet.strip()
    if not snippet:
        return 0, 0

    start = text.lower().find(snippet.lower())
    if start == -1:
        return 0, 0
    return start, start + len(snippet)


class CopyleaksProvider(BaseScanProvider):
    """
    Copyleaks education API client.

    Logs in, submits the text as a file scan, then polls for the result.
    Credentials default to the COPYLEAKS_EMAIL and COPYLEAKS_API_KEY
    environment variables.
    """

    name = "copyleaks"

    def __init__(
        self,
        email: str | None = None,
        api_key: str | None = None,
        base_url: str = COPYLEAKS_API_URL,
        client: httpx.AsyncClient | None = None,
        poll_interval: float = 5.0,
        max_polls: int = 12,
        timeout: float = 30.0,
    ):
        self.email = email or os.environ.get("COPYLEAKS_EMAIL")
        self.api_key = api_key or os.environ.get("COPYLEAKS_API_KEY")
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(cls, config: ProviderConfig, **kwargs: Any) -> "CopyleaksProvider":
        """Create a provider from configured credentials and base URL."""
        return cls(
            email=config.copyleaks_email,
            api_key=config.copyleaks_api_key,
            base_url=config.copyleaks_base_url,
            **kwargs,
        )

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def scan(self, text: str) -> ExternalScanResult:
        """Submit text to Copyleaks and wait for the scan result."""
        if not self.email or not self.api_key:
            raise ProviderError(self.name, "credentials not configured")

        scan_id = f"scan_{uuid.uuid4().hex}"

        try:
            async with self._session() as client:
                token = await self._login(client)
                await self._submit(client, token, scan_id, text)
                results = await self._poll_results(client, token, scan_id)
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"request failed: {e}") from e

        logger.info(f"Copyleaks scan {scan_id} completed")
        return self._to_scan_result(text, scan_id, results)

    async def _login(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            f"{self.base_url}/v3/account/login/api",
            json={"email": self.email, "key": self.api_key},
        )
        if response.status_code != 200:
            raise ProviderError(self.name, f"authentication failed: {response.status_code}")

        token = response.json().get("access_token")
        if not token:
            raise ProviderError(self.name, "authentication returned no access token")
        return token

    async def _submit(
        self,
        client: httpx.AsyncClient,
        token: str,
        scan_id: str,
        text: str,
    ) -> None:
        response = await client.put(
            f"{self.base_url}/v3/education/submit/file/{scan_id}",
            headers={"Authorization": f"Bearer {token}"},
            json={
                "base64": base64.b64encode(text.encode()).decode(),
                "filename": "document.txt",
                "properties": {"sandbox": False},
            },
        )
        if response.status_code not in (200, 201, 202):
            raise ProviderError(self.name, f"scan submission failed: {response.status_code}")

    async def _poll_results(
        self,
        client: httpx.AsyncClient,
        token: str,
        scan_id: str,
    ) -> dict[str, Any]:
        for attempt in range(self.max_polls):
            response = await client.get(
                f"{self.base_url}/v3/education/{scan_id}/result",
                headers={"Authorization": f"Bearer {token}"},
            )
            if response.status_code == 200:
                return response.json()
            if response.status_code not in (202, 404):
                raise ProviderError(self.name, f"results fetch failed: {response.status_code}")

            logger.debug(f"Copyleaks scan {scan_id} pending (attempt {attempt + 1})")
            await asyncio.sleep(self.poll_interval)

        raise ProviderError(self.name, f"scan {scan_id} still pending after {self.max_polls} polls")

    def _to_scan_result(
        self,
        text: str,
        scan_id: str,
        results: dict[str, Any],
    ) -> ExternalScanResult:
        word_count = max(len(text.split()), 1)
        matches = []

        for item in results.get("internet", []):
            snippet = item.get("introduction") or ""
            start, end = locate_snippet(text, snippet)
            matches.append(PlagiarismMatch(
                source_text=text[start:end] if end > start else snippet,
                matched_text=snippet,
                similarity=min(item.get("matchedWords", 0) / word_count, 1.0),
                start_position=start,
                end_position=end,
                source_url=item.get("url"),
                source_title=item.get("title"),
                match_type=MatchType.EXACT,
            ))

        aggregated: Optional[float] = None
        score = results.get("score") or {}
        if "aggregatedScore" in score:
            aggregated = min(max(score["aggregatedScore"] / 100, 0.0), 1.0)

        return ExternalScanResult(matches=matches, aggregated_score=aggregated, scan_id=scan_id)
