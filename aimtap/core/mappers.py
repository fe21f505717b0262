"""
Mapping functions for aimtap.

Pure functions turning beatmap records and performance values into paths,
ratios, bucket keys and collection names.
"""

import math
from pathlib import Path

from ..sources.listing import BeatmapRecord
from ..sources.performance import PerformanceSplit
from ..utils.exceptions import BeatmapPathError, DegenerateRatioError

SONGS_DIRECTORY = "Songs"


def resolve_beatmap_path(library_root: Path, record: BeatmapRecord) -> Path:
    """Locate a beatmap's .osu file inside the osu! directory."""
    if not record.folder_name or not record.file_name:
        raise BeatmapPathError(
            f"Missing folder or file name for {record.display_name}",
            beatmap_hash=record.hash,
            folder_name=record.folder_name,
            file_name=record.file_name,
        )

    return Path(library_root) / SONGS_DIRECTORY / record.folder_name / record.file_name


def aim_ratio(split: PerformanceSplit, beatmap_hash: str | None = None) -> float:
    """Share of the aim component in aim + speed, between 0 and 1."""
    total = split.total
    if total <= 0 or math.isnan(total):
        raise DegenerateRatioError(
            "Aim and speed pp are both zero",
            beatmap_hash=beatmap_hash,
            aim_value=split.aim_value,
            speed_value=split.speed_value,
        )

    return split.aim_value / total


def bucket_key(ratio: float, precision: float) -> int:
    """Snap a 0..1 ratio down to a multiple of ``precision`` percent.

    ``bucket_key(0.68, 10)`` is 60, ``bucket_key(0.68, 5)`` is 65.
    """
    if precision <= 0:
        raise ValueError(f"precision must be positive, got {precision}")

    percentage = min(max(ratio * 100.0, 0.0), 100.0)
    return int(math.floor(percentage / precision) * precision)


def collection_name(prefix: str, key: int) -> str:
    """Display name of the collection holding bucket ``key``."""
    return f"{prefix}{key}% Aim / {100 - key}% Tapping"


def is_generated_name(name: str | None, prefix: str) -> bool:
    """Whether a collection name marks it as generated by aimtap."""
    return name is not None and name.startswith(prefix)
