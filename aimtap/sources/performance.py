"""
Performance source: aim and speed pp for a single ``.osu`` file.

The default implementation wraps rosu-pp-py. Anything with a matching
``calculate`` method can stand in for it, which is how the tests drive the
classifier.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import rosu_pp_py as rosu

from ..utils.exceptions import BeatmapParseError, UnsupportedModeError

DEFAULT_ACCURACY = 99.0


@dataclass(frozen=True)
class PerformanceSplit:
    aim_value: float
    speed_value: float

    @property
    def total(self) -> float:
        return self.aim_value + self.speed_value


class PerformanceSource(Protocol):
    def calculate(self, path: Path, accuracy: float = DEFAULT_ACCURACY) -> PerformanceSplit:
        """Return the aim/speed split or raise a ``BeatmapError``."""
        ...


class RosuPerformanceSource:
    """rosu-pp-py backed performance source."""

    def calculate(self, path: Path, accuracy: float = DEFAULT_ACCURACY) -> PerformanceSplit:
        try:
            beatmap = rosu.Beatmap(path=str(path))
            attributes = rosu.Performance(accuracy=accuracy).calculate(beatmap)
        except Exception as e:
            raise BeatmapParseError(f"Error while parsing {path}: {e}", path=path) from e

        # Only osu!standard attributes carry aim and speed values
        if attributes.pp_aim is None or attributes.pp_speed is None:
            raise UnsupportedModeError(
                f"{path} did not produce osu!standard performance attributes",
                mode=str(attributes.difficulty.mode),
            )

        return PerformanceSplit(
            aim_value=float(attributes.pp_aim), speed_value=float(attributes.pp_speed)
        )
