"""Configuration management: servers, repository, and TOML loading.

Usage:
    >>> from dbtools.config import load_config, ServerProfile, ToolsConfig
"""

from dbtools.config.loader import load_config, resolve_config_path
from dbtools.config.models import ServerProfile, ToolsConfig

__all__ = ["load_config", "resolve_config_path", "ServerProfile", "ToolsConfig"]
