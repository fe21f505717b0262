import logging
from pathlib import Path

import pytest
from helpers import encode_listing

from aimtap.config import Settings
from aimtap.sources.collection import Collection, CollectionList, save_collections
from aimtap.sources.listing import VERSION_SINGLE_STAR_RATINGS, BeatmapRecord


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def build_library(tmp_path):
    """Create an osu! directory with both databases and the .osu files."""

    def build(
        records: list[BeatmapRecord],
        collections: list[Collection] | None = None,
        version: int = VERSION_SINGLE_STAR_RATINGS,
    ) -> Path:
        root = tmp_path / "osu!"
        root.mkdir(exist_ok=True)
        (root / "osu!.db").write_bytes(encode_listing(records, version))
        save_collections(
            CollectionList(collections=list(collections or [])), root / "collection.db"
        )
        for record in records:
            if record.folder_name and record.file_name:
                folder = root / "Songs" / record.folder_name
                folder.mkdir(parents=True, exist_ok=True)
                (folder / record.file_name).write_text(
                    "osu file format v14\n", encoding="utf-8"
                )
        return root

    return build


@pytest.fixture
def restore_root_logger():
    """Undo handlers installed by ``setup_logging`` during a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
