"""Deck size tuner for tripeaks-style patience levels."""
__version__ = "1.0.0"
