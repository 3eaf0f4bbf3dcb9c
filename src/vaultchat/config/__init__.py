"""Settings model and parser for vaultchat.yaml."""

from vaultchat.config.models import ChatSettings
from vaultchat.config.parser import ConfigError, load_settings

__all__ = [
    "ChatSettings",
    "ConfigError",
    "load_settings",
]
