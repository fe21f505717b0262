"""
Reader for osu!stable's ``osu!.db`` beatmap listing.

Only the fields aimtap needs are kept on :class:`BeatmapRecord`; the rest of
each entry is consumed and discarded. Three format revisions change the entry
layout:

* before ``20140609`` difficulty values are bytes and star ratings are absent
* before ``20191106`` every entry is prefixed with its size in bytes
* from ``20250107`` star ratings are stored as singles instead of doubles
"""

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

from ..utils.exceptions import DatabaseReadError
from ..utils.logging import get_logger
from .binary import BinaryFormatError, OsuReader

logger = get_logger(__name__)

VERSION_SINGLE_DIFFICULTY = 20140609
VERSION_NO_ENTRY_SIZE = 20191106
VERSION_SINGLE_STAR_RATINGS = 20250107

NO_MOD = 0
TIMING_POINT_SIZE = 17

_PAIR_INT = 0x08
_PAIR_SINGLE = 0x0C
_PAIR_DOUBLE = 0x0D


class GameMode(IntEnum):
    STANDARD = 0
    TAIKO = 1
    CATCH = 2
    MANIA = 3


@dataclass(frozen=True)
class BeatmapRecord:
    """One difficulty from the listing."""

    hash: str | None
    folder_name: str | None
    file_name: str | None
    mode: GameMode | int
    star_ratings: dict[int, float] = field(default_factory=dict)
    artist: str | None = None
    title: str | None = None
    version: str | None = None
    beatmap_id: int = 0

    @property
    def nomod_star_rating(self) -> float | None:
        return self.star_ratings.get(NO_MOD)

    @property
    def display_name(self) -> str:
        if self.title is None and self.version is None:
            return self.file_name or self.hash or "<unknown beatmap>"
        return f"{self.artist or '?'} - {self.title or '?'} [{self.version or '?'}]"


@dataclass(frozen=True)
class Listing:
    version: int
    folder_count: int
    player_name: str | None
    beatmaps: list[BeatmapRecord]


def _read_star_ratings(reader: OsuReader, version: int) -> dict[int, float]:
    ratings: dict[int, float] = {}
    for _ in range(reader.read_int()):
        start = reader.offset
        if reader.read_byte() != _PAIR_INT:
            raise BinaryFormatError("Invalid star rating pair", start)
        mods = reader.read_int()
        marker = reader.read_byte()
        if version >= VERSION_SINGLE_STAR_RATINGS and marker == _PAIR_SINGLE:
            ratings[mods] = reader.read_single()
        elif marker == _PAIR_DOUBLE:
            ratings[mods] = reader.read_double()
        else:
            raise BinaryFormatError("Invalid star rating value", start)
    return ratings


def _read_mode(reader: OsuReader) -> GameMode | int:
    value = reader.read_byte()
    try:
        return GameMode(value)
    except ValueError:
        return value


def read_beatmap(reader: OsuReader, version: int) -> BeatmapRecord:
    """Decode a single listing entry."""
    if version < VERSION_NO_ENTRY_SIZE:
        reader.read_int()

    artist = reader.read_string()
    reader.read_string()  # artist (unicode)
    title = reader.read_string()
    reader.read_string()  # title (unicode)
    reader.read_string()  # creator
    difficulty = reader.read_string()
    reader.read_string()  # audio file
    beatmap_hash = reader.read_string()
    file_name = reader.read_string()

    reader.read_byte()  # ranked status
    reader.skip(2 * 3)  # circle, slider and spinner counts
    reader.read_long()  # last modified

    if version < VERSION_SINGLE_DIFFICULTY:
        reader.skip(1 * 4)
    else:
        reader.skip(4 * 4)
    reader.read_double()  # slider velocity

    std_ratings: dict[int, float] = {}
    if version >= VERSION_SINGLE_DIFFICULTY:
        std_ratings = _read_star_ratings(reader, version)
        for _ in range(3):  # taiko, catch, mania
            _read_star_ratings(reader, version)

    reader.skip(4 * 3)  # drain time, total time, preview time
    reader.skip(TIMING_POINT_SIZE * reader.read_int())

    beatmap_id = reader.read_int()
    reader.read_int()  # beatmapset id
    reader.read_int()  # thread id
    reader.skip(4)  # grades per mode
    reader.read_short()  # local offset
    reader.read_single()  # stack leniency
    mode = _read_mode(reader)
    reader.read_string()  # source
    reader.read_string()  # tags
    reader.read_short()  # online offset
    reader.read_string()  # title font
    reader.read_bool()  # unplayed
    reader.read_long()  # last played
    reader.read_bool()  # osz2
    folder_name = reader.read_string()
    reader.read_long()  # last repository check
    reader.skip(5)  # ignore sound/skin, disable storyboard/video, visual override
    if version < VERSION_SINGLE_DIFFICULTY:
        reader.read_short()
    reader.read_int()  # last edit time
    reader.read_byte()  # mania scroll speed

    return BeatmapRecord(
        hash=beatmap_hash,
        folder_name=folder_name,
        file_name=file_name,
        mode=mode,
        star_ratings=std_ratings,
        artist=artist,
        title=title,
        version=difficulty,
        beatmap_id=beatmap_id,
    )


def parse_listing(data: bytes) -> Listing:
    reader = OsuReader(data)
    version = reader.read_int()
    folder_count = reader.read_int()
    reader.read_bool()  # account unlocked
    reader.read_long()  # unlock date
    player_name = reader.read_string()
    count = reader.read_int()

    beatmaps = [read_beatmap(reader, version) for _ in range(count)]

    return Listing(
        version=version,
        folder_count=folder_count,
        player_name=player_name,
        beatmaps=beatmaps,
    )


def load_listing(path: Path) -> Listing:
    """Load ``osu!.db`` from disk."""
    logger.info("Reading osu!.db", path=str(path))
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise DatabaseReadError(f"Could not read osu!.db: {e}", path=path) from e

    try:
        listing = parse_listing(data)
    except BinaryFormatError as e:
        raise DatabaseReadError(
            f"Could not decode osu!.db: {e}", path=path, offset=e.offset
        ) from e

    logger.info(
        "Finished reading osu!.db",
        version=listing.version,
        beatmaps=len(listing.beatmaps),
    )
    return listing
