"""API routes package.

This package contains all API route handlers for the application.
"""
from . import analyze
from . import simulate
from . import tune

__all__ = [
    "analyze",
    "simulate",
    "tune",
]
