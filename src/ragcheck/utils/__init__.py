"""Shared utilities."""

from .config import (
    BM25Config,
    Config,
    EngineConfig,
    GroundingConfig,
    PlagiarismConfig,
    ProviderConfig,
    SearchConfig,
    load_config,
)
from .logging import get_logger, set_log_level

__all__ = [
    "BM25Config",
    "Config",
    "EngineConfig",
    "GroundingConfig",
    "PlagiarismConfig",
    "ProviderConfig",
    "SearchConfig",
    "load_config",
    "get_logger",
    "set_log_level",
]
