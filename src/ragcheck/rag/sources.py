"""Named data sources with explicit success or failure outcomes."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class SourceOutcome(Generic[T]):
    """Result of calling one data source.

    Exactly one of ``data`` (on success) or ``reason`` (on failure) is
    meaningful, as reported by ``is_ok``.

    Attributes:
        name: Source name, e.g. "vector" or "keyword"
        data: Data returned by the source
        reason: Why the source was unavailable
        elapsed: Seconds spent waiting for the source
    """

    name: str
    data: Optional[T] = None
    reason: Optional[str] = None
    elapsed: float = 0.0

    @classmethod
    def ok(cls, name: str, data: T, elapsed: float = 0.0) -> "SourceOutcome[T]":
        """Create a successful outcome."""
        return cls(name=name, data=data, elapsed=elapsed)

    @classmethod
    def err(cls, name: str, reason: str, elapsed: float = 0.0) -> "SourceOutcome[T]":
        """Create a failed outcome."""
        return cls(name=name, reason=reason, elapsed=elapsed)

    @property
    def is_ok(self) -> bool:
        return self.reason is None


async def run_source(
    name: str,
    call: Awaitable[T],
    timeout: Optional[float] = None,
) -> SourceOutcome[T]:
    """Await a source call, converting timeouts and errors into an outcome.

    Cancellation of the enclosing task still propagates.

    Args:
        name: Source name used in logs and outcomes
        call: Awaitable producing the source's data
        timeout: Seconds to wait before giving up (no limit if None)

    Returns:
        SourceOutcome wrapping the data or the failure reason
    """
    loop = asyncio.get_running_loop()
    started = loop.time()

    try:
        data = await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        elapsed = loop.time() - started
        logger.warning(f"Source '{name}' timed out after {elapsed:.2f}s")
        return SourceOutcome.err(name, f"timed out after {timeout}s", elapsed)
    except Exception as e:
        elapsed = loop.time() - started
        logger.warning(f"Source '{name}' unavailable: {e}")
        return SourceOutcome.err(name, str(e) or type(e).__name__, elapsed)

    return SourceOutcome.ok(name, data, loop.time() - started)
