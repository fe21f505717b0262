"""
Filtering functions for aimtap.

Pure functions that narrow the beatmap listing down to the maps worth
sending to the pp calculator.
"""

from collections.abc import Callable, Iterable

from ..sources.listing import BeatmapRecord, GameMode

RecordFilter = Callable[[list[BeatmapRecord]], list[BeatmapRecord]]


def filter_by_mode(
    records: Iterable[BeatmapRecord], mode: GameMode = GameMode.STANDARD
) -> list[BeatmapRecord]:
    """Keep beatmaps of the given game mode."""
    return [record for record in records if record.mode == mode]


def filter_by_star_rating(
    records: Iterable[BeatmapRecord], min_star_rating: float | None
) -> list[BeatmapRecord]:
    """Keep beatmaps whose no-mod star rating reaches ``min_star_rating``."""
    if min_star_rating is None:
        return list(records)

    def stars_match(record: BeatmapRecord) -> bool:
        stars = record.nomod_star_rating
        if stars is None:
            return True  # osu! has not calculated it yet

        return stars >= min_star_rating

    return [record for record in records if stars_match(record)]


def apply_filters(
    records: Iterable[BeatmapRecord], filters: list[RecordFilter]
) -> list[BeatmapRecord]:
    """Apply a series of filter functions to records."""
    result = list(records)
    for filter_func in filters:
        result = filter_func(result)
    return result


def create_mode_filter(mode: GameMode = GameMode.STANDARD) -> RecordFilter:
    """Create a game mode filter function."""
    return lambda records: filter_by_mode(records, mode)


def create_star_rating_filter(min_star_rating: float | None) -> RecordFilter:
    """Create a star rating filter function."""
    return lambda records: filter_by_star_rating(records, min_star_rating)


def filter_classifiable(
    records: Iterable[BeatmapRecord], min_star_rating: float | None
) -> list[BeatmapRecord]:
    """Keep osu!standard beatmaps at or above the star rating threshold."""
    return apply_filters(
        records,
        [create_mode_filter(GameMode.STANDARD), create_star_rating_filter(min_star_rating)],
    )
