"""
Synchronization of aim ratio buckets into collection.db.

Previously generated collections (those whose name starts with the
configured prefix) are removed first, then one collection per bucket is
appended. User collections keep their content and relative order.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..config import Settings
from ..sources.collection import Collection, load_collections, save_collections
from ..sources.listing import load_listing
from ..sources.performance import PerformanceSource, RosuPerformanceSource
from ..utils.exceptions import LibraryNotFoundError, ValidationError
from ..utils.logging import generate_correlation_id, get_logger, operation_logger
from . import mappers
from .classify import Buckets, ProgressCallback, classify_with_results

logger = get_logger(__name__)

LISTING_FILENAME = "osu!.db"
COLLECTION_FILENAME = "collection.db"


@dataclass(frozen=True)
class LibraryPaths:
    root: Path
    listing: Path
    collection: Path


def validate_library(library_root: Path | str) -> LibraryPaths:
    """Check that the osu! directory holds both databases."""
    root = Path(library_root)

    listing_path = root / LISTING_FILENAME
    if not listing_path.is_file():
        raise LibraryNotFoundError(f"{LISTING_FILENAME} was not found", path=listing_path)

    collection_path = root / COLLECTION_FILENAME
    if not collection_path.is_file():
        raise LibraryNotFoundError(
            f"{COLLECTION_FILENAME} was not found", path=collection_path
        )

    return LibraryPaths(root=root, listing=listing_path, collection=collection_path)


def _validate_prefix(prefix: str) -> None:
    # An empty prefix would match, and delete, every named collection
    if not prefix:
        raise ValidationError(
            "Collection prefix must not be empty",
            field_name="collection_prefix",
            field_value=prefix,
            validation_rule="non-empty string",
        )


def remove_previous_collections(collections: list[Collection], prefix: str) -> int:
    """Drop generated collections in place and return how many were removed."""
    collection_count = len(collections)
    collections[:] = [
        collection
        for collection in collections
        if not mappers.is_generated_name(collection.name, prefix)
    ]
    removed = collection_count - len(collections)

    logger.info(f"Removed {removed} collections from previous iteration")
    return removed


def add_new_collections(
    collections: list[Collection], buckets: Buckets, prefix: str
) -> int:
    """Append one collection per bucket, in ascending bucket order."""
    for key in sorted(buckets):
        hashes = buckets[key]
        name = mappers.collection_name(prefix, key)

        logger.info(f"Adding {name} with {len(hashes)} maps")
        collections.append(Collection(name=name, beatmap_hashes=list(hashes)))

    return len(buckets)


def synchronize_collections(
    collections: list[Collection], buckets: Buckets, prefix: str
) -> dict[str, int]:
    """Replace generated collections with the given buckets."""
    _validate_prefix(prefix)
    removed = remove_previous_collections(collections, prefix)
    added = add_new_collections(collections, buckets, prefix)
    return {"removed": removed, "added": added}


def summarize_collections(collections: list[Collection], prefix: str) -> list[dict[str, Any]]:
    """Describe each collection for status output."""
    return [
        {
            "name": collection.name,
            "size": len(collection.beatmap_hashes),
            "missing": sum(1 for h in collection.beatmap_hashes if h is None),
            "generated": mappers.is_generated_name(collection.name, prefix),
        }
        for collection in collections
    ]


def _create_sync_results() -> dict[str, Any]:
    """Create standardized sync results structure."""
    return {
        "processed": 0,
        "classified": 0,
        "skipped": 0,
        "errors": 0,
        "removed": 0,
        "added": 0,
        "written": False,
        "skip_reasons": {},
        "collections": [],
        "details": [],
        "performance": {
            "start_time": time.time(),
            "duration_ms": 0,
        },
    }


def _finalize_sync_results(
    results: dict[str, Any], correlation_id: str | None = None
) -> dict[str, Any]:
    """Finalize sync results with performance metrics."""
    end_time = time.time()
    start_time = results["performance"]["start_time"]
    duration_ms = (end_time - start_time) * 1000

    results["performance"]["duration_ms"] = round(duration_ms, 2)
    results["performance"]["end_time"] = end_time

    processed = results.get("processed", 0)
    if processed > 0:
        results["performance"]["success_rate"] = round(
            results.get("classified", 0) / processed * 100, 1
        )
    else:
        results["performance"]["success_rate"] = 100.0

    logger.performance(
        "Sync operation completed",
        duration_ms=duration_ms,
        processed=processed,
        classified=results.get("classified", 0),
        skipped=results.get("skipped", 0),
        errors=results.get("errors", 0),
        removed=results.get("removed", 0),
        added=results.get("added", 0),
        correlation_id=correlation_id,
    )

    return results


def sync_library(
    library_root: Path | str,
    settings: Settings,
    performance_source: PerformanceSource | None = None,
    dry_run: bool = False,
    correlation_id: str | None = None,
    progress: ProgressCallback | None = None,
) -> dict[str, Any]:
    """Classify the library and rewrite its generated collections.

    Fatal problems (missing or unreadable databases, failed write) raise;
    problems with individual beatmaps are counted in the results.
    """
    correlation_id = correlation_id or generate_correlation_id()
    prefix = settings.collection_prefix

    with operation_logger(
        "collection_sync",
        correlation_id,
        library=str(library_root),
        dry_run=dry_run,
    ) as op_logger:
        _validate_prefix(prefix)
        paths = validate_library(library_root)

        if performance_source is None:
            performance_source = RosuPerformanceSource()

        results = _create_sync_results()

        listing = load_listing(paths.listing)

        buckets, classification = classify_with_results(
            listing.beatmaps,
            performance_source,
            settings,
            paths.root,
            progress=progress,
        )
        for counter in ("processed", "classified", "skipped", "errors"):
            results[counter] = classification[counter]
        results["skip_reasons"] = classification["skip_reasons"]
        results["details"] = classification["details"]
        results["candidates"] = classification["candidates"]
        results["total"] = classification["total"]

        collection_list = load_collections(paths.collection)
        counts = synchronize_collections(collection_list.collections, buckets, prefix)
        results.update(counts)
        results["collections"] = [
            {"name": mappers.collection_name(prefix, key), "size": len(buckets[key])}
            for key in sorted(buckets)
        ]

        if dry_run:
            op_logger.info("Dry run: collection.db left unchanged")
        else:
            save_collections(collection_list, paths.collection)
            results["written"] = True
            op_logger.audit(
                "collection_db_written",
                path=str(paths.collection),
                removed=counts["removed"],
                added=counts["added"],
            )

        return _finalize_sync_results(results, correlation_id)


def clean_library(
    library_root: Path | str,
    prefix: str,
    dry_run: bool = False,
    correlation_id: str | None = None,
) -> dict[str, Any]:
    """Remove generated collections without classifying anything."""
    correlation_id = correlation_id or generate_correlation_id()

    with operation_logger(
        "collection_clean", correlation_id, library=str(library_root), dry_run=dry_run
    ) as op_logger:
        _validate_prefix(prefix)
        paths = validate_library(library_root)

        collection_list = load_collections(paths.collection)
        removed_names = [
            collection.name
            for collection in collection_list.collections
            if mappers.is_generated_name(collection.name, prefix)
        ]
        removed = remove_previous_collections(collection_list.collections, prefix)

        written = False
        if removed and not dry_run:
            save_collections(collection_list, paths.collection)
            written = True
            op_logger.audit(
                "collection_db_written", path=str(paths.collection), removed=removed
            )

        return {
            "removed": removed,
            "removed_names": removed_names,
            "remaining": len(collection_list.collections),
            "written": written,
        }
