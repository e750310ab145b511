"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use HIGHLIGHTDOWN_ prefix (e.g., HIGHLIGHTDOWN_MAX_HIGHLIGHT_GAP=500).

Settings can also be loaded from a .env file in the project root.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


CommentStyle = Literal["html", "md", "none"]


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use HIGHLIGHTDOWN_ prefix.

    Examples:
        HIGHLIGHTDOWN_MAX_HIGHLIGHT_GAP=500
        HIGHLIGHTDOWN_COMMENT_STYLE=md
        HIGHLIGHTDOWN_DEFAULT_TEMPLATE=callout
    """

    model_config = SettingsConfigDict(
        env_prefix="HIGHLIGHTDOWN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Tokenizer configuration
    max_template_nesting: int = Field(
        default=20,
        ge=1,
        description="Deepest conditional block nesting; deeper openers render as literal text",
    )

    # Grouping configuration
    max_highlight_gap: int = Field(
        default=250,
        ge=0,
        description="Largest distance (characters, or pages without positions) that still merges highlights",
    )

    contiguous_gap: int = Field(
        default=2,
        ge=0,
        description="Largest distance joined with a plain space instead of a [...] marker",
    )

    unknown_chapter_label: str = Field(
        default="Chapter Unknown",
        description="Chapter label for annotations without a chapter",
    )

    # Rendering configuration
    comment_style: CommentStyle = Field(
        default="html",
        description="KOHL provenance marker style: html, md or none",
    )

    default_template: str = Field(
        default="default",
        description="Built-in template used when none is selected or the selection is invalid",
    )

    # Cache configuration
    pipeline_cache_size: int = Field(
        default=200,
        ge=1,
        description="Maximum number of compiled filter pipelines kept in memory",
    )

    template_cache_size: int = Field(
        default=10,
        ge=1,
        description="Maximum number of compiled templates kept in memory",
    )


# Singleton instance - import this in your code
appsettings = AppSettings()
