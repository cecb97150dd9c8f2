#
# config/__init__.py
#
"""
Configuration handling sub-package for alertd.

Exports the loading functions and core configuration models.
"""

from .loader import load_config, parse_elasticsearch_url, sync_engine_config
from .models import (
    ElasticsearchConfig,
    EngineConfig,
    GlobalConfig,
    ListenConfig,
    PathsConfig,
    ServerConfig,
)

__all__ = [
    "ElasticsearchConfig",
    "EngineConfig",
    "GlobalConfig",
    "ListenConfig",
    "PathsConfig",
    "ServerConfig",
    "load_config",
    "parse_elasticsearch_url",
    "sync_engine_config",
]

# 🔼⚙️
