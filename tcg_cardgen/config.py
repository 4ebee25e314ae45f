"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_user_cardstyles_dir() -> Path:
    return Path.home() / ".tcg-cardgen" / "cardstyles"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Template discovery
    workspace_templates_dir: Path = Field(
        default=Path("templates"), alias="TCG_WORKSPACE_TEMPLATES_DIR"
    )
    user_cardstyles_dir: Path = Field(
        default_factory=_default_user_cardstyles_dir, alias="TCG_USER_CARDSTYLES_DIR"
    )
    template_dir: Optional[Path] = Field(default=None, alias="TCG_TEMPLATE_DIR")
    max_extends_depth: int = Field(default=32, alias="TCG_MAX_EXTENDS_DEPTH")

    # Card defaults
    default_tcg: str = Field(default="mtg", alias="TCG_DEFAULT_TCG")
    default_cardstyle: str = Field(default="default", alias="TCG_DEFAULT_CARDSTYLE")

    # Output
    output_dir_name: str = Field(default=".tcg-cardgen-out", alias="TCG_OUTPUT_DIR")
    background_color: str = Field(default="#FFFFFF", alias="TCG_BACKGROUND_COLOR")

    # Fonts
    fonts_dir: Optional[Path] = Field(default=None, alias="TCG_FONTS_DIR")
    default_font_family: str = Field(default="DejaVuSans", alias="TCG_DEFAULT_FONT_FAMILY")
    default_font_size: float = Field(default=12.0, alias="TCG_DEFAULT_FONT_SIZE")

    # Remote artwork
    http_timeout_seconds: float = Field(default=15.0, alias="TCG_HTTP_TIMEOUT_SECONDS")
    http_max_attempts: int = Field(default=3, alias="TCG_HTTP_MAX_ATTEMPTS")
    image_cache_dir: Optional[Path] = Field(default=None, alias="TCG_IMAGE_CACHE_DIR")

    # Batch processing
    max_workers: int = Field(default=1, alias="TCG_MAX_WORKERS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def builtin_templates_dir(self) -> Path:
        """Path to the templates shipped inside the package."""
        return Path(__file__).parent / "templates" / "builtin"


# Global settings instance
settings = Settings()
