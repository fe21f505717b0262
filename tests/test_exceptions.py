from aimtap.utils import exceptions
from aimtap.utils.exceptions import (
    BeatmapParseError,
    DatabaseReadError,
    ErrorCategory,
    ErrorSeverity,
    LibraryNotFoundError,
)


def test_library_not_found_is_a_configuration_error():
    error = LibraryNotFoundError("osu!.db was not found", path="/games/osu!/osu!.db")

    assert error.category == ErrorCategory.CONFIGURATION_ERROR
    assert error.details["path"] == "/games/osu!/osu!.db"
    assert any("collection.db" in hint for hint in error.troubleshooting_hints)


def test_to_dict_carries_details_and_hints():
    error = DatabaseReadError("Could not decode osu!.db", path="osu!.db", offset=12)

    data = error.to_dict()

    assert data["error_type"] == "DatabaseReadError"
    assert data["category"] == "data_error"
    assert data["severity"] == "high"
    assert data["details"] == {"path": "osu!.db", "offset": 12}
    assert data["troubleshooting_hints"]


def test_beatmap_errors_are_low_severity_skips():
    error = BeatmapParseError("bad map", path="Songs/x/y.osu", beatmap_hash="abc")

    assert error.severity == ErrorSeverity.LOW
    assert error.reason == "parse_failed"
    assert error.beatmap_hash == "abc"
    assert error.details == {"path": "Songs/x/y.osu", "beatmap_hash": "abc"}


class RecordingLogger:
    def __init__(self):
        self.records = []

    def error(self, message, **kwargs):
        self.records.append(("error", message, kwargs))

    def debug(self, message, **kwargs):
        self.records.append(("debug", message, kwargs))


def test_error_creation_is_logged_with_its_own_type(monkeypatch):
    recorder = RecordingLogger()
    monkeypatch.setattr(exceptions.logger, "logger", recorder)

    DatabaseReadError("Could not decode osu!.db", path="osu!.db", offset=12)
    BeatmapParseError("bad map", path="Songs/x/y.osu")

    (level, message, fields), (skip_level, _, skip_fields) = recorder.records
    assert level == "error"
    assert message == "Exception created: DatabaseReadError"
    assert fields["error"] == "Could not decode osu!.db"
    assert fields["error_type"] == "DatabaseReadError"
    assert fields["offset"] == 12
    assert skip_level == "debug"
    assert skip_fields["error_type"] == "BeatmapParseError"
