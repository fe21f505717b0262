"""
Classification of beatmaps into aim ratio buckets.

The classifier is a reduction from beatmap records to a fresh mapping of
bucket key to beatmap hashes. Each record is processed independently, so the
work can be split over threads and the partial mappings merged afterwards.
Failures on a single beatmap are counted and skipped, never raised.
"""

import contextvars
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from ..config import Settings
from ..sources.listing import BeatmapRecord
from ..sources.performance import PerformanceSource
from ..utils.exceptions import BeatmapError
from ..utils.logging import get_logger
from . import filters, mappers

logger = get_logger(__name__)

Buckets = dict[int, list[str | None]]
ProgressCallback = Callable[[int, int], None]


def _create_classification_results(total: int, candidates: int) -> dict[str, Any]:
    """Create standardized classification results structure."""
    return {
        "total": total,
        "candidates": candidates,
        "processed": 0,
        "classified": 0,
        "skipped": 0,
        "errors": 0,
        "skip_reasons": {},
        "details": [],
        "performance": {
            "start_time": time.time(),
            "duration_ms": 0,
        },
    }


def _record_skip(results: dict[str, Any], record: BeatmapRecord, error: BeatmapError) -> None:
    results["skipped"] += 1
    results["skip_reasons"][error.reason] = results["skip_reasons"].get(error.reason, 0) + 1
    results["details"].append(
        {
            "title": record.display_name,
            "action": "skipped",
            "reason": error.message,
            "hash": record.hash,
        }
    )


def classify_record(
    record: BeatmapRecord,
    library_root: Path,
    performance_source: PerformanceSource,
    settings: Settings,
) -> int:
    """Bucket key for a single record; raises ``BeatmapError`` when it has none."""
    path = mappers.resolve_beatmap_path(library_root, record)
    split = performance_source.calculate(path, settings.accuracy)
    ratio = mappers.aim_ratio(split, record.hash)
    return mappers.bucket_key(ratio, settings.ratio_precision)


def merge_buckets(*partials: Buckets) -> Buckets:
    """Merge bucket mappings, concatenating hashes that share a key."""
    merged: Buckets = {}
    for partial in partials:
        for key, hashes in partial.items():
            merged.setdefault(key, []).extend(hashes)
    return merged


def _classify_chunk(
    records: Sequence[BeatmapRecord],
    library_root: Path,
    performance_source: PerformanceSource,
    settings: Settings,
    tick: Callable[[], None],
) -> tuple[Buckets, dict[str, Any]]:
    buckets: Buckets = {}
    results = _create_classification_results(len(records), len(records))

    for record in records:
        try:
            key = classify_record(record, library_root, performance_source, settings)
        except BeatmapError as e:
            _record_skip(results, record, e)
            logger.debug(
                f"Skipping {record.display_name}",
                reason=e.reason,
                error=e.message,
            )
        except Exception as e:
            results["errors"] += 1
            results["details"].append(
                {
                    "title": record.display_name,
                    "action": "error",
                    "reason": str(e),
                    "hash": record.hash,
                }
            )
            logger.error(f"Error processing {record.display_name}", error=e)
        else:
            buckets.setdefault(key, []).append(record.hash)
            results["classified"] += 1
        finally:
            results["processed"] += 1
            tick()

    return buckets, results


def _chunked(records: Sequence[BeatmapRecord], parts: int) -> list[Sequence[BeatmapRecord]]:
    size = max(1, -(-len(records) // parts))
    return [records[i:i + size] for i in range(0, len(records), size)]


def classify_with_results(
    records: Iterable[BeatmapRecord],
    performance_source: PerformanceSource,
    settings: Settings,
    library_root: Path,
    progress: ProgressCallback | None = None,
) -> tuple[Buckets, dict[str, Any]]:
    """Classify records and report what happened to each of them."""
    records = list(records)
    candidates = filters.filter_classifiable(records, settings.min_star_rating)
    results = _create_classification_results(len(records), len(candidates))

    logger.info(
        f"Found {len(candidates)} out of {len(records)} total maps to process",
        min_star_rating=settings.min_star_rating,
        ratio_precision=settings.ratio_precision,
        workers=settings.workers,
    )

    start = time.time()
    processed = 0
    lock = threading.Lock()

    def tick() -> None:
        nonlocal processed
        with lock:
            processed += 1
            count = processed
        if count % settings.progress_interval == 0:
            logger.info(
                f"Processed {count}/{len(candidates)} maps in "
                f"{time.time() - start:.1f} seconds"
            )
        if progress:
            progress(count, len(candidates))

    if settings.workers > 1 and len(candidates) > 1:
        chunks = _chunked(candidates, settings.workers)
        with ThreadPoolExecutor(max_workers=settings.workers) as executor:
            futures = [
                executor.submit(
                    contextvars.copy_context().run,
                    _classify_chunk,
                    chunk,
                    library_root,
                    performance_source,
                    settings,
                    tick,
                )
                for chunk in chunks
            ]
            partials = [future.result() for future in futures]
    else:
        partials = [
            _classify_chunk(candidates, library_root, performance_source, settings, tick)
        ]

    buckets = merge_buckets(*(partial_buckets for partial_buckets, _ in partials))

    for _, partial_results in partials:
        for counter in ("processed", "classified", "skipped", "errors"):
            results[counter] += partial_results[counter]
        for reason, count in partial_results["skip_reasons"].items():
            results["skip_reasons"][reason] = results["skip_reasons"].get(reason, 0) + count
        results["details"].extend(partial_results["details"])

    results["buckets"] = {key: len(hashes) for key, hashes in sorted(buckets.items())}
    results["performance"]["duration_ms"] = round((time.time() - start) * 1000, 2)

    logger.performance(
        "Classification completed",
        duration_ms=results["performance"]["duration_ms"],
        processed=results["processed"],
        classified=results["classified"],
        skipped=results["skipped"],
        errors=results["errors"],
        buckets=len(buckets),
    )
    if results["errors"]:
        logger.warning(
            f"{results['errors']} beatmaps failed with unexpected errors",
            errors=results["errors"],
        )

    return buckets, results


def classify(
    records: Iterable[BeatmapRecord],
    performance_source: PerformanceSource,
    settings: Settings,
    library_root: Path,
) -> Buckets:
    """Group beatmap hashes by the aim ratio bucket of their map."""
    buckets, _ = classify_with_results(records, performance_source, settings, library_root)
    return buckets
