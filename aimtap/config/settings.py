"""
Application settings using Pydantic BaseSettings.

Defaults for a run, overridable from the environment, a .env file or the
command line.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration settings."""

    # Logging configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format: json or console")
    log_file: str | None = Field(default=None, description="Optional file receiving log records")

    # Collection naming
    collection_prefix: str = Field(
        default="% ", description="Prefix marking collections generated by aimtap"
    )

    # Classification
    ratio_precision: float = Field(
        default=10.0,
        gt=0,
        description="Width of each aim ratio bucket in percentage points",
    )
    min_star_rating: float | None = Field(
        default=4.0,
        description="Minimum no-mod star rating; None disables the filter",
    )
    accuracy: float = Field(
        default=99.0, gt=0, le=100, description="Accuracy used for pp calculation"
    )

    # Run behaviour
    workers: int = Field(default=1, ge=1, description="Threads used for pp calculation")
    progress_interval: int = Field(
        default=100, ge=1, description="Log progress every N processed beatmaps"
    )
    dry_run: bool = Field(default=False, description="Dry run mode - collection.db is not written")

    model_config = {
        "env_prefix": "AIMTAP_",
        "env_file": ".env",
        "case_sensitive": False,
        "validate_assignment": True,
    }

    def with_overrides(self, **overrides) -> "Settings":
        """Return a validated copy with non-None overrides applied."""
        values = self.model_dump()
        values.update({key: value for key, value in overrides.items() if value is not None})
        return Settings.model_validate(values)


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
