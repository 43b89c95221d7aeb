"""Configuration module -- exports Settings and load_config."""

from gemshop.config.loader import load_config
from gemshop.config.settings import Settings

__all__ = ["Settings", "load_config"]
