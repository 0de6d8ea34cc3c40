"""Configuration module for shadowindex."""

from shadowindex.config.loader import load_config, get_config_path, save_config
from shadowindex.config.schema import Config, EmbeddingConfig, IndexingConfig, RetrievalConfig, StoreConfig
from shadowindex.config.access import get_config, clear_config_cache

__all__ = [
    "Config",
    "EmbeddingConfig",
    "IndexingConfig",
    "RetrievalConfig",
    "StoreConfig",
    "load_config",
    "save_config",
    "get_config_path",
    "get_config",
    "clear_config_cache",
]
