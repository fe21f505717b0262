import io
import struct
from pathlib import Path

from aimtap.sources.binary import write_int, write_string
from aimtap.sources.listing import (
    VERSION_NO_ENTRY_SIZE,
    VERSION_SINGLE_DIFFICULTY,
    VERSION_SINGLE_STAR_RATINGS,
    BeatmapRecord,
    GameMode,
)
from aimtap.sources.performance import PerformanceSplit
from aimtap.utils.exceptions import BeatmapParseError


class FakePerformanceSource:
    """Performance source answering from a table keyed by .osu file name."""

    def __init__(self, splits: dict):
        self.splits = splits
        self.calls: list[tuple[Path, float]] = []

    def calculate(self, path: Path, accuracy: float = 99.0) -> PerformanceSplit:
        self.calls.append((Path(path), accuracy))
        value = self.splits.get(Path(path).name)
        if value is None:
            raise BeatmapParseError(f"Error while parsing {path}: no such map", path=path)
        if isinstance(value, Exception):
            raise value
        return value


def split_for_percent(aim_percent: int) -> PerformanceSplit:
    """Aim/speed split whose aim share is ``aim_percent`` percent."""
    return PerformanceSplit(aim_value=float(aim_percent), speed_value=float(100 - aim_percent))


def make_record(
    name: str,
    stars: float | None = 5.0,
    mode: GameMode = GameMode.STANDARD,
    folder_name: str | None = "1 Artist - Song",
    beatmap_hash: str | None = "",
    beatmap_id: int = 1000,
) -> BeatmapRecord:
    """Listing record whose file name is ``{name}.osu``."""
    return BeatmapRecord(
        hash=f"hash-{name}" if beatmap_hash == "" else beatmap_hash,
        folder_name=folder_name,
        file_name=f"{name}.osu",
        mode=mode,
        star_ratings={} if stars is None else {0: stars, 64: stars * 1.4},
        artist="Artist",
        title="Song",
        version=name,
        beatmap_id=beatmap_id,
    )


def _write_star_ratings(stream: io.BytesIO, ratings: dict[int, float], version: int) -> None:
    write_int(stream, len(ratings))
    for mods, stars in ratings.items():
        stream.write(struct.pack("<Bi", 0x08, mods))
        if version >= VERSION_SINGLE_STAR_RATINGS:
            stream.write(struct.pack("<Bf", 0x0C, stars))
        else:
            stream.write(struct.pack("<Bd", 0x0D, stars))


def _encode_beatmap(record: BeatmapRecord, version: int) -> bytes:
    body = io.BytesIO()
    for value in (
        record.artist,
        record.artist,
        record.title,
        record.title,
        "Mapper",
        record.version,
        "audio.mp3",
        record.hash,
        record.file_name,
    ):
        write_string(body, value)

    body.write(struct.pack("<B", 4))
    body.write(struct.pack("<hhh", 300, 120, 2))
    body.write(struct.pack("<q", 638000000000000000))
    if version < VERSION_SINGLE_DIFFICULTY:
        body.write(struct.pack("<BBBB", 9, 4, 6, 8))
    else:
        body.write(struct.pack("<ffff", 9.2, 4.0, 6.0, 8.5))
    body.write(struct.pack("<d", 1.8))

    if version >= VERSION_SINGLE_DIFFICULTY:
        _write_star_ratings(body, record.star_ratings, version)
        for _ in range(3):
            _write_star_ratings(body, {}, version)

    body.write(struct.pack("<iii", 120, 125000, 40000))
    write_int(body, 2)
    body.write(struct.pack("<dd?", 333.33, 1200.0, True))
    body.write(struct.pack("<dd?", -100.0, 5000.0, False))

    body.write(struct.pack("<iii", record.beatmap_id, 1, 0))
    body.write(struct.pack("<BBBB", 9, 9, 9, 9))
    body.write(struct.pack("<h", 0))
    body.write(struct.pack("<f", 0.7))
    body.write(struct.pack("<B", int(record.mode)))
    write_string(body, "")
    write_string(body, "tag1 tag2")
    body.write(struct.pack("<h", 0))
    write_string(body, None)
    body.write(struct.pack("<?", True))
    body.write(struct.pack("<q", 0))
    body.write(struct.pack("<?", False))
    write_string(body, record.folder_name)
    body.write(struct.pack("<q", 0))
    body.write(struct.pack("<?????", False, False, False, False, False))
    if version < VERSION_SINGLE_DIFFICULTY:
        body.write(struct.pack("<h", 0))
    body.write(struct.pack("<i", 0))
    body.write(struct.pack("<B", 0))

    entry = body.getvalue()
    if version < VERSION_NO_ENTRY_SIZE:
        return struct.pack("<i", len(entry)) + entry
    return entry


def encode_listing(
    records: list[BeatmapRecord], version: int = VERSION_SINGLE_STAR_RATINGS
) -> bytes:
    """Build an osu!.db image holding ``records``."""
    stream = io.BytesIO()
    stream.write(struct.pack("<ii?q", version, 1, True, 0))
    write_string(stream, "player")
    write_int(stream, len(records))
    for record in records:
        stream.write(_encode_beatmap(record, version))
    write_int(stream, 0)
    return stream.getvalue()


def write_osu_file(path: Path, mode: int = 0, circles: int = 200) -> Path:
    """Write a playable .osu file of alternating jumps between two corners."""
    lines = [
        "osu file format v14",
        "",
        "[General]",
        "AudioFilename: audio.mp3",
        f"Mode: {mode}",
        "",
        "[Metadata]",
        "Title:Song",
        "Artist:Artist",
        "Creator:Mapper",
        f"Version:{path.stem}",
        "",
        "[Difficulty]",
        "HPDrainRate:5",
        "CircleSize:4",
        "OverallDifficulty:8",
        "ApproachRate:9",
        "SliderMultiplier:1.4",
        "SliderTickRate:1",
        "",
        "[TimingPoints]",
        "0,300,4,2,0,60,1,0",
        "",
        "[HitObjects]",
    ]
    for i in range(circles):
        x, y = (64, 64) if i % 2 == 0 else (448, 320)
        lines.append(f"{x},{y},{1000 + i * 150},1,0,0:0:0:0:")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
