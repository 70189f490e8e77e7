"""Core business logic package.

This package contains the board model, the favorable card generator, the
autoplayer, the playout engine and the Monte-Carlo deck size tuner.
"""
from .analyzer import LevelAnalyzer, get_analyzer
from .favorable import FavorableCardGenerator
from .playout import PlayoutEngine, GameOutcome, simulate_game
from .tuner import DifficultyTuner, get_tuner

__all__ = [
    "LevelAnalyzer",
    "get_analyzer",
    "FavorableCardGenerator",
    "PlayoutEngine",
    "GameOutcome",
    "simulate_game",
    "DifficultyTuner",
    "get_tuner",
]
