"""
External collaborators for aimtap.

Readers and writers for osu!stable's databases and the pp calculator.
"""

from . import binary, collection, listing, performance

__all__ = ["binary", "collection", "listing", "performance"]
