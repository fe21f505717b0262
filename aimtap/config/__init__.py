"""
Configuration management for aimtap.

Pydantic BaseSettings with environment and .env support.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
