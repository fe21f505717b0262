"""
Core business logic for aimtap.

Filtering, mapping, classification and collection synchronization.
"""

from . import classify, filters, mappers, sync

__all__ = ["classify", "filters", "mappers", "sync"]
