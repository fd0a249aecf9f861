"""Configuration management for readtrack.

Loads configuration from environment variables and provides defaults.
"""

import math
import os
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path
    db_timeout: float  # seconds to wait on a locked database

    # Calendar
    timezone: Optional[str]  # IANA name, None for host local time

    # Logging
    log_level: str

    # Problems found while reading the environment
    load_errors: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "READTRACK_DB_PATH",
            str(Path.home() / ".readtrack" / "readtrack.db"),
        )
        db_path = Path(db_path_str).expanduser()

        load_errors = []
        timeout_str = os.environ.get("READTRACK_DB_TIMEOUT", "5.0")
        try:
            db_timeout = float(timeout_str)
        except ValueError:
            db_timeout = math.nan
        if not math.isfinite(db_timeout) or db_timeout <= 0:
            load_errors.append(f"Invalid READTRACK_DB_TIMEOUT {timeout_str!r}, using 5.0")
            db_timeout = 5.0

        return cls(
            db_path=db_path,
            db_timeout=db_timeout,
            timezone=os.environ.get("READTRACK_TIMEZONE") or None,
            log_level=os.environ.get("READTRACK_LOG_LEVEL", "WARNING").upper(),
            load_errors=load_errors,
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = list(self.load_errors)

        # Check database directory is writable
        if not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if self.timezone:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError):
                errors.append(f"Unknown timezone: {self.timezone}")

        if not math.isfinite(self.db_timeout) or self.db_timeout <= 0:
            errors.append(f"Database timeout must be positive: {self.db_timeout}")

        if self.log_level not in LOG_LEVELS:
            errors.append(f"Unknown log level: {self.log_level}")

        return errors

    def tzinfo(self) -> Optional[tzinfo]:
        """Timezone used to derive calendar dates (None means host local).

        An unknown zone falls back to host local time; validate() reports it.
        """
        if self.timezone:
            try:
                return ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError):
                return None
        return None


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
