"""Configuration management package."""

from .settings import JoinMeSettings, get_settings

__all__ = ["JoinMeSettings", "get_settings"]
