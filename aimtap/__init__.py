"""
aimtap - osu! collections by aim/tapping ratio

Classifies an osu!stable beatmap library by the share of aim pp in aim + speed
pp and writes the result as collections into collection.db.
"""

from . import cli, config, core, sources, utils

__version__ = "0.1.0"
__all__ = ["cli", "config", "core", "sources", "utils"]
