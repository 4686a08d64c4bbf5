"""GRASS engine tools."""

from .api import register_grass_tools

__all__ = ["register_grass_tools"]
