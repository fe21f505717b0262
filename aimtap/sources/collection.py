"""
Reader and writer for osu!stable's ``collection.db``.

Layout: ``int version``, ``int count``, then per collection an osu! string
name, ``int size`` and that many osu! string MD5 hashes. Absent strings are
kept as ``None`` and written back the same way.
"""

import io
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from ..utils.exceptions import DatabaseReadError, DatabaseWriteError
from ..utils.logging import get_logger
from .binary import BinaryFormatError, OsuReader, write_int, write_string

logger = get_logger(__name__)

DEFAULT_VERSION = 20250107


@dataclass
class Collection:
    name: str | None
    beatmap_hashes: list[str | None] = field(default_factory=list)


@dataclass
class CollectionList:
    version: int = DEFAULT_VERSION
    collections: list[Collection] = field(default_factory=list)


def parse_collections(data: bytes) -> CollectionList:
    reader = OsuReader(data)
    version = reader.read_int()
    collections = []
    for _ in range(reader.read_int()):
        name = reader.read_string()
        hashes = [reader.read_string() for _ in range(reader.read_int())]
        collections.append(Collection(name=name, beatmap_hashes=hashes))
    return CollectionList(version=version, collections=collections)


def encode_collections(collection_list: CollectionList) -> bytes:
    stream = io.BytesIO()
    write_int(stream, collection_list.version)
    write_int(stream, len(collection_list.collections))
    for collection in collection_list.collections:
        write_string(stream, collection.name)
        write_int(stream, len(collection.beatmap_hashes))
        for beatmap_hash in collection.beatmap_hashes:
            write_string(stream, beatmap_hash)
    return stream.getvalue()


def load_collections(path: Path) -> CollectionList:
    """Load ``collection.db`` from disk."""
    logger.info("Reading collection.db", path=str(path))
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise DatabaseReadError(f"Could not read collection.db: {e}", path=path) from e

    try:
        collection_list = parse_collections(data)
    except BinaryFormatError as e:
        raise DatabaseReadError(
            f"Could not decode collection.db: {e}", path=path, offset=e.offset
        ) from e

    logger.info(
        "Finished reading collection.db",
        version=collection_list.version,
        collections=len(collection_list.collections),
    )
    return collection_list


def save_collections(collection_list: CollectionList, path: Path) -> None:
    """Write ``collection.db`` atomically.

    The data goes to a temporary file next to ``path`` which then replaces
    it, so an interrupted write leaves the previous database intact.
    """
    path = Path(path)
    payload = encode_collections(collection_list)

    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "wb", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise DatabaseWriteError(f"Could not write collection.db: {e}", path=path) from e

    logger.info(
        "Successfully wrote collection.db",
        path=str(path),
        collections=len(collection_list.collections),
        size_bytes=len(payload),
    )
