"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    # Version history
    version_history_page_size: int = Field(
        default=50, validation_alias="VERSION_HISTORY_PAGE_SIZE",
    )
    max_version_history_page_size: int = Field(
        default=100, validation_alias="MAX_VERSION_HISTORY_PAGE_SIZE",
    )
    # Attempts at allocating a version number before a collision is surfaced
    version_write_retries: int = Field(default=3, validation_alias="VERSION_WRITE_RETRIES")

    # Line diff: larger changed regions fall back to a coarse block diff
    diff_max_lines: int = Field(default=5000, validation_alias="DIFF_MAX_LINES")

    # Default retention policy (0 disables the count/age rule)
    retention_max_versions: int = Field(default=100, validation_alias="RETENTION_MAX_VERSIONS")
    retention_max_age_days: int = Field(default=365, validation_alias="RETENTION_MAX_AGE_DAYS")
    retention_keep_milestones: bool = Field(
        default=True, validation_alias="RETENTION_KEEP_MILESTONES",
    )
    retention_keep_first_version: bool = Field(
        default=True, validation_alias="RETENTION_KEEP_FIRST_VERSION",
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject limits that would make versioning or diffing unusable."""
        if self.diff_max_lines < 1:
            raise ValueError("DIFF_MAX_LINES must be at least 1")
        if self.version_write_retries < 1:
            raise ValueError("VERSION_WRITE_RETRIES must be at least 1")
        if self.retention_max_versions < 0 or self.retention_max_age_days < 0:
            raise ValueError("Retention limits cannot be negative (use 0 to disable)")
        if self.version_history_page_size > self.max_version_history_page_size:
            raise ValueError(
                "VERSION_HISTORY_PAGE_SIZE cannot exceed MAX_VERSION_HISTORY_PAGE_SIZE",
            )
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
