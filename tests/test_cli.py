import logging

import pytest
from helpers import FakePerformanceSource, make_record, split_for_percent
from typer.testing import CliRunner

from aimtap.cli.main import ExitCodes, app, get_exit_code_for_error
from aimtap.core import sync
from aimtap.sources.collection import Collection, load_collections
from aimtap.utils.exceptions import (
    DatabaseReadError,
    DatabaseWriteError,
    LibraryNotFoundError,
    ValidationError,
)

runner = CliRunner()


@pytest.fixture
def fake_source(monkeypatch):
    source = FakePerformanceSource(
        {"a.osu": split_for_percent(62), "b.osu": split_for_percent(75)}
    )
    monkeypatch.setattr(sync, "RosuPerformanceSource", lambda: source)
    return source


@pytest.fixture
def library(build_library):
    return build_library(
        [make_record("a"), make_record("b")],
        [Collection("% 10% Aim / 90% Tapping", ["old"]), Collection("My Favorites", ["fav"])],
    )


def test_sync_writes_collections(library, fake_source):
    result = runner.invoke(app, ["sync", str(library)])

    assert result.exit_code == ExitCodes.SUCCESS, result.output
    assert "Successfully wrote collection.db" in result.output
    assert [c.name for c in load_collections(library / "collection.db").collections] == [
        "My Favorites",
        "% 60% Aim / 40% Tapping",
        "% 70% Aim / 30% Tapping",
    ]


def test_sync_with_prefix_and_precision(library, fake_source):
    result = runner.invoke(
        app,
        ["sync", str(library), "--collection-prefix", "aim ", "--ratio-precision", "25"],
    )

    assert result.exit_code == ExitCodes.SUCCESS, result.output
    assert [c.name for c in load_collections(library / "collection.db").collections] == [
        "% 10% Aim / 90% Tapping",
        "My Favorites",
        "aim 50% Aim / 50% Tapping",
        "aim 75% Aim / 25% Tapping",
    ]


def test_sync_dry_run(library, fake_source):
    before = (library / "collection.db").read_bytes()

    result = runner.invoke(app, ["sync", str(library), "--dry-run"])

    assert result.exit_code == ExitCodes.SUCCESS, result.output
    assert "Dry run: collection.db was not modified" in result.output
    assert (library / "collection.db").read_bytes() == before


def test_sync_without_databases(tmp_path, fake_source):
    result = runner.invoke(app, ["sync", str(tmp_path)])

    assert result.exit_code == ExitCodes.CONFIGURATION_ERROR
    assert "osu!.db was not found" in result.output


def test_sync_rejects_zero_precision(library, fake_source):
    result = runner.invoke(app, ["sync", str(library), "--ratio-precision", "0"])

    assert result.exit_code == ExitCodes.VALIDATION_ERROR
    assert fake_source.calls == []


def test_sync_rejects_corrupt_collection_db(library, fake_source):
    (library / "collection.db").write_bytes(b"\x01\x02")

    result = runner.invoke(app, ["sync", str(library)])

    assert result.exit_code == ExitCodes.DATA_ERROR


def test_clean(library):
    result = runner.invoke(app, ["clean", str(library)])

    assert result.exit_code == ExitCodes.SUCCESS, result.output
    assert "Removed 1 collections" in result.output
    assert [c.name for c in load_collections(library / "collection.db").collections] == [
        "My Favorites"
    ]


def test_clean_with_nothing_to_remove(library):
    result = runner.invoke(app, ["clean", str(library), "--collection-prefix", "none "])

    assert result.exit_code == ExitCodes.SUCCESS, result.output
    assert "No generated collections found" in result.output


def test_status(library):
    result = runner.invoke(app, ["status", str(library)])

    assert result.exit_code == ExitCodes.SUCCESS, result.output
    assert "My Favorites" in result.output
    assert "Summary: 1 generated / 2 total collections" in result.output


def test_config_validate(library):
    result = runner.invoke(app, ["config-validate", str(library)])

    assert result.exit_code == ExitCodes.SUCCESS, result.output
    assert "Configuration is valid" in result.output


def test_config_validate_reports_missing_databases(tmp_path):
    result = runner.invoke(app, ["config-validate", str(tmp_path)])

    assert result.exit_code == ExitCodes.CONFIGURATION_ERROR


@pytest.mark.parametrize(
    "error, exit_code",
    [
        (LibraryNotFoundError("missing"), ExitCodes.CONFIGURATION_ERROR),
        (DatabaseReadError("corrupt"), ExitCodes.DATA_ERROR),
        (DatabaseWriteError("locked"), ExitCodes.WRITE_ERROR),
        (ValidationError("bad"), ExitCodes.VALIDATION_ERROR),
        (KeyboardInterrupt(), ExitCodes.USER_INTERRUPTED),
        (RuntimeError("boom"), ExitCodes.GENERAL_ERROR),
    ],
)
def test_exit_codes(error, exit_code):
    assert get_exit_code_for_error(error) == exit_code


@pytest.mark.usefixtures("restore_root_logger")
def test_log_file_option(library, fake_source, tmp_path):
    log_file = tmp_path / "aimtap.log"

    result = runner.invoke(app, ["--log-file", str(log_file), "sync", str(library)])

    assert result.exit_code == ExitCodes.SUCCESS, result.output
    for handler in logging.getLogger().handlers:
        handler.flush()
    content = log_file.read_text(encoding="utf-8")
    assert "Operation completed: collection_sync" in content
    assert "AUDIT: collection_db_written" in content
