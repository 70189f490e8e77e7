"""Utility helpers package."""
from .helpers import validate_level_json, load_level_json, load_level_file

__all__ = [
    "validate_level_json",
    "load_level_json",
    "load_level_file",
]
