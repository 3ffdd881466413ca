"""Configuration management for the sheet records reader.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
SHR_ prefix, or via a .env file in the project root.

Core decoding functions never read these settings themselves; they take
explicit arguments. The settings feed the ``WorkbookReader`` facade and any
caller that wants the same defaults.

Environment Variables:
    SHR_LOG_LEVEL: Logging level (default: INFO)
    SHR_DEBUG: Enable debug mode (default: false)
    SHR_MAX_ARCHIVE_SIZE_MB: Largest workbook file accepted (default: 100)
    SHR_WORKBOOK_PART: Archive path of the workbook part
    SHR_WORKBOOK_RELATIONSHIPS_PART: Archive path of the workbook relationships
    SHR_SHARED_STRINGS_PART: Archive path of the shared-string table
    SHR_DATE_MIN_YEAR: Earliest year accepted for serial dates (default: 1900)
    SHR_DATE_MAX_YEAR: Latest year accepted for serial dates (default: 2100)
    SHR_TIMEZONE_CANDIDATES: Comma-separated IANA zones tried by inference
    SHR_TIMEZONE_SAMPLE_LIMIT: Max sample pairs used by inference (default: 100)
"""

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sheet_records.utils.logging import configure_logging


class Settings(BaseSettings):
    """Reader settings loaded from environment variables.

    Example .env file:
        SHR_LOG_LEVEL=DEBUG
        SHR_TIMEZONE_CANDIDATES=America/Chicago,UTC
    """

    model_config = SettingsConfigDict(
        env_prefix="SHR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Enable debug mode with additional logging."""

    # =========================================================================
    # Archive Settings
    # =========================================================================

    max_archive_size_mb: int = 100
    """Largest workbook file, in megabytes, that will be loaded into memory."""

    # =========================================================================
    # Workbook Part Settings
    # =========================================================================

    workbook_part: str = "xl/workbook.xml"
    """Archive path of the workbook manifest part."""

    workbook_relationships_part: str = "xl/_rels/workbook.xml.rels"
    """Archive path of the workbook's relationships part."""

    shared_strings_part: str = "xl/sharedStrings.xml"
    """Archive path of the optional shared-string table."""

    # =========================================================================
    # Date Settings
    # =========================================================================

    date_min_year: int = 1900
    """Earliest calendar year a serial date may decode to."""

    date_max_year: int = 2100
    """Latest calendar year a serial date may decode to."""

    timezone_candidates: str = (
        "America/Chicago,America/New_York,America/Denver,America/Los_Angeles,UTC"
    )
    """Comma-separated IANA zones tried, in order, by time zone inference."""

    timezone_sample_limit: int = 100
    """Maximum number of sample pairs scored by time zone inference."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("max_archive_size_mb")
    @classmethod
    def validate_archive_size(cls, v: int) -> int:
        """Validate archive size limit is positive and reasonable."""
        if not 1 <= v <= 2048:
            raise ValueError(f"max_archive_size_mb must be between 1 and 2048, got {v}")
        return v

    @field_validator(
        "workbook_part", "workbook_relationships_part", "shared_strings_part"
    )
    @classmethod
    def validate_part_path(cls, v: str) -> str:
        """Validate part paths are non-empty archive paths."""
        stripped = v.strip().lstrip("/")
        if not stripped:
            raise ValueError("Part paths must be non-empty")
        return stripped

    @field_validator("timezone_candidates")
    @classmethod
    def validate_timezone_candidates(cls, v: str) -> str:
        """Validate every candidate names a known IANA zone."""
        zones = [zone.strip() for zone in v.split(",") if zone.strip()]
        if not zones:
            raise ValueError("timezone_candidates must name at least one zone")
        for zone in zones:
            try:
                ZoneInfo(zone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"Unknown time zone: {zone}") from exc
        return ",".join(zones)

    @field_validator("timezone_sample_limit")
    @classmethod
    def validate_sample_limit(cls, v: int) -> int:
        """Validate the sample cap is positive."""
        if v < 1:
            raise ValueError(f"timezone_sample_limit must be at least 1, got {v}")
        return v

    @model_validator(mode="after")
    def validate_year_range(self) -> "Settings":
        """Validate the serial date year window is not inverted."""
        if self.date_min_year > self.date_max_year:
            raise ValueError(
                f"date_min_year ({self.date_min_year}) must not exceed "
                f"date_max_year ({self.date_max_year})"
            )
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_archive_size_bytes(self) -> int:
        """Get max archive size in bytes."""
        return self.max_archive_size_mb * 1024 * 1024

    @property
    def timezone_candidates_list(self) -> list[str]:
        """Get candidate zones as a list, in priority order."""
        return self.timezone_candidates.split(",")

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    @property
    def effective_log_level(self) -> int:
        """Get the level to configure; debug mode forces DEBUG."""
        return logging.DEBUG if self.debug else self.log_level_int


def configure_logging_from_settings(s: Settings | None = None) -> None:
    """Configure structured logging from settings and log a summary.

    Call once at application startup.

    Args:
        s: Settings to apply; the module-level settings by default.
    """
    s = s or settings
    configure_logging(level=s.effective_log_level, use_structured_formatter=True)
    logging.getLogger(__name__).info(
        f"Configuration loaded: log_level={s.log_level}, debug={s.debug}, "
        f"max_archive_size_mb={s.max_archive_size_mb}, "
        f"timezone_candidates={s.timezone_candidates}"
    )


# Create the global settings instance
settings = Settings()
