"""
Configuration package for highlightdown

Provides application settings via environment variables using pydantic-settings.
"""

from .settings import appsettings, AppSettings, CommentStyle

__all__ = ["appsettings", "AppSettings", "CommentStyle"]
