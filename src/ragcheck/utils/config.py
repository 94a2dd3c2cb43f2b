"""
Configuration utilities.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from pydantic import BaseModel, Field


class Config(BaseModel):
    """Base configuration class."""

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from file (YAML or JSON)."""
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        elif path.suffix == ".json":
            with open(path) as f:
                data = json.load(f)
            return cls(**data)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")


class BM25Config(BaseModel):
    """Parameters of the BM25-like keyword scorer.

    ``corpus_size`` stands in for real document frequencies: the IDF term is
    ``log((corpus_size + 1) / (tf + 0.5))``.
    """
    k1: float = Field(default=1.5, ge=0)
    b: float = Field(default=0.75, ge=0, le=1)
    avg_doc_length: float = Field(default=300.0, gt=0)
    corpus_size: int = Field(default=1000, gt=0)


class SearchConfig(BaseModel):
    """Defaults for hybrid search requests."""
    limit: int = Field(default=10, gt=0)
    vector_weight: float = Field(default=0.6, ge=0)
    keyword_weight: float = Field(default=0.4, ge=0)
    min_score: float = Field(default=0.3, ge=0)
    rerank: bool = False
    candidate_multiplier: int = Field(default=2, gt=0)


class GroundingConfig(BaseModel):
    """Thresholds for attributing claims to sources."""
    min_sentence_length: int = Field(default=10, ge=0)
    min_confidence: float = Field(default=0.3, ge=0, le=1)
    max_sources: int = Field(default=3, gt=0)
    phrase_match_bonus: float = Field(default=0.5, ge=0)


class PlagiarismConfig(BaseModel):
    """Settings for corpus plagiarism checks."""
    threshold: float = Field(default=0.7, ge=0, le=1)
    min_match_length: int = Field(default=20, gt=0)
    window_size: int = Field(default=50, gt=0)
    window_threshold: float = Field(default=0.7, ge=0, le=1)
    prefilter_algorithm: str = "cosine"
    max_workers: int | None = None


class ProviderConfig(BaseModel):
    """Timeouts and credentials for external collaborators."""
    vector_search_timeout: float = Field(default=10.0, gt=0)
    keyword_search_timeout: float = Field(default=10.0, gt=0)
    storage_timeout: float = Field(default=10.0, gt=0)
    external_scan_timeout: float = Field(default=60.0, gt=0)
    copyleaks_email: str | None = None
    copyleaks_api_key: str | None = None
    copyleaks_base_url: str = "https://api.copyleaks.com"


class EngineConfig(Config):
    """Top-level configuration for the retrieval and similarity engine."""
    bm25: BM25Config = Field(default_factory=BM25Config)
    search: SearchConfig = Field(default_factory=SearchConfig)
    grounding: GroundingConfig = Field(default_factory=GroundingConfig)
    plagiarism: PlagiarismConfig = Field(default_factory=PlagiarismConfig)
    providers: ProviderConfig = Field(default_factory=ProviderConfig)
    log_level: str = "INFO"

    def override(self, **sections: Any) -> "EngineConfig":
        """Return a copy with the given sections partially updated."""
        data = self.model_dump()
        for name, values in sections.items():
            if name not in data:
                raise ValueError(f"Unknown config section: {name}")
            if isinstance(data[name], dict):
                data[name].update(values)
            else:
                data[name] = values
        return EngineConfig(**data)


def load_config(path: str | Path = "ragcheck.yaml") -> EngineConfig:
    """
    Load engine configuration from file.

    Args:
        path: Path to config file

    Returns:
        EngineConfig instance
    """
    path = Path(path)

    if not path.exists():
        return EngineConfig()

    return EngineConfig.from_file(path)
