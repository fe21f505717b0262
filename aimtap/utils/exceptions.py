"""
Exception hierarchy for aimtap.

Errors carry a category, a severity and troubleshooting hints so the CLI can
pick an exit code and show the operator what to check. Fatal errors abort the
run; beatmap-level errors are caught by the classifier and counted as skips.
"""

import time
from enum import Enum
from pathlib import Path
from typing import Any

from .logging import get_logger

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Categories for error classification."""

    USER_ERROR = "user_error"
    CONFIGURATION_ERROR = "configuration_error"
    DATA_ERROR = "data_error"
    SYSTEM_ERROR = "system_error"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AimTapError(Exception):
    """
    Base exception for all aimtap errors.

    Carries structured context for logging and operator-facing hints.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        category: ErrorCategory = ErrorCategory.SYSTEM_ERROR,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        correlation_id: str | None = None,
        user_message: str | None = None,
        troubleshooting_hints: list[str] | None = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.category = category
        self.severity = severity
        self.correlation_id = correlation_id
        self.user_message = user_message or message
        self.troubleshooting_hints = troubleshooting_hints or []
        self.context = context
        self.timestamp = time.time()

        self._log_error()

    def _log_error(self) -> None:
        """Log error creation with full context."""
        fields = {
            "category": self.category.value,
            "severity": self.severity.value,
            **self.details,
            **self.context,
        }
        message = f"Exception created: {self.__class__.__name__}"

        # Low severity errors are per-beatmap skips and can number in the thousands
        if self.severity == ErrorSeverity.LOW:
            logger.debug(
                message,
                error=self.message,
                error_type=self.__class__.__name__,
                **fields,
            )
        else:
            logger.error(message, error=self, **fields)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "category": self.category.value,
            "severity": self.severity.value,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp,
            "details": self.details,
            "troubleshooting_hints": self.troubleshooting_hints,
            "context": self.context,
        }


class ConfigurationError(AimTapError):
    """Raised when settings or command-line options are unusable."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        actual_value: str | None = None,
        **kwargs,
    ):
        hints = kwargs.pop(
            "troubleshooting_hints",
            [
                "Check your .env file or AIMTAP_* environment variables",
                "Run 'aimtap config-validate' to see the effective settings",
            ],
        )

        if config_key:
            hints.append(f"Ensure '{config_key}' is properly configured")
            kwargs.setdefault("details", {})["config_key"] = config_key

        if actual_value:
            kwargs.setdefault("details", {})["actual_value"] = actual_value

        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION_ERROR,
            severity=kwargs.pop("severity", ErrorSeverity.HIGH),
            troubleshooting_hints=hints,
            **kwargs,
        )


class LibraryNotFoundError(ConfigurationError):
    """Raised when the osu! directory lacks a required database file."""

    def __init__(self, message: str, path: Path | str | None = None, **kwargs):
        hints = [
            "Pass the osu! installation directory as the first argument",
            "The directory must contain both osu!.db and collection.db",
            "Start osu! once so it creates collection.db if it is missing",
        ]
        kwargs.setdefault("details", {})["path"] = str(path) if path else None
        super().__init__(message, troubleshooting_hints=hints, **kwargs)


class ValidationError(AimTapError):
    """Raised when a user-supplied value fails validation."""

    def __init__(
        self,
        message: str,
        field_name: str | None = None,
        field_value: Any | None = None,
        validation_rule: str | None = None,
        **kwargs,
    ):
        details = kwargs.setdefault("details", {})
        details.update(
            {
                "field_name": field_name,
                "field_value": field_value,
                "validation_rule": validation_rule,
            }
        )

        hints = ["Check the command-line options and their allowed ranges"]
        if field_name:
            hints.append(f"Check the value provided for '{field_name}'")

        super().__init__(
            message,
            category=ErrorCategory.USER_ERROR,
            troubleshooting_hints=hints,
            **kwargs,
        )


class DatabaseReadError(AimTapError):
    """Raised when osu!.db or collection.db cannot be decoded."""

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        offset: int | None = None,
        **kwargs,
    ):
        details = kwargs.setdefault("details", {})
        details.update({"path": str(path) if path else None, "offset": offset})

        hints = [
            "Close osu! before running so the database is not mid-write",
            "Let osu! rebuild its database by starting it once",
            "Check that the file is an osu!stable database, not osu!lazer's client.realm",
        ]

        super().__init__(
            message,
            category=ErrorCategory.DATA_ERROR,
            severity=ErrorSeverity.HIGH,
            troubleshooting_hints=hints,
            **kwargs,
        )


class DatabaseWriteError(AimTapError):
    """Raised when collection.db cannot be written back."""

    def __init__(self, message: str, path: Path | str | None = None, **kwargs):
        kwargs.setdefault("details", {})["path"] = str(path) if path else None

        hints = [
            "Close osu! so it does not hold a lock on collection.db",
            "Check write permissions on the osu! directory",
            "Check free disk space",
        ]

        super().__init__(
            message,
            category=ErrorCategory.SYSTEM_ERROR,
            severity=ErrorSeverity.CRITICAL,
            troubleshooting_hints=hints,
            **kwargs,
        )


class BeatmapError(AimTapError):
    """Base class for problems with a single beatmap.

    These never abort a run; the classifier records ``reason`` and moves on.
    """

    reason = "beatmap_error"

    def __init__(self, message: str, beatmap_hash: str | None = None, **kwargs):
        kwargs.setdefault("details", {})["beatmap_hash"] = beatmap_hash
        self.beatmap_hash = beatmap_hash
        super().__init__(
            message,
            category=ErrorCategory.DATA_ERROR,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )


class BeatmapPathError(BeatmapError):
    """The listing entry lacks a folder or file name."""

    reason = "unresolved_path"


class BeatmapParseError(BeatmapError):
    """The .osu file could not be read or calculated."""

    reason = "parse_failed"

    def __init__(self, message: str, path: Path | str | None = None, **kwargs):
        kwargs.setdefault("details", {})["path"] = str(path) if path else None
        super().__init__(message, **kwargs)


class UnsupportedModeError(BeatmapError):
    """The calculated attributes are not osu!standard attributes."""

    reason = "unsupported_mode"


class DegenerateRatioError(BeatmapError):
    """Aim and speed are both zero, so no ratio exists."""

    reason = "degenerate_ratio"
