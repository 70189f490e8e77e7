"""Data models package.

This package contains level models, tuning parameters and API schemas.
"""
from .level import (
    CardKind,
    BombModifier,
    CardTemplate,
    LevelSettings,
    LevelTemplate,
    FavorableParams,
    BoardGeometry,
    TuningRequest,
    LevelValidationError,
    ConfigurationError,
    parse_level,
    CLOSE_WIN_MAX_REMAINING,
    RANDOM_STACK_MARKER,
)
from .schemas import (
    FavorableConfig,
    AnalyzeRequest,
    AnalyzeResponse,
    SimulateRequest,
    SimulateResponse,
    PlayoutRequest,
    PlayoutResponse,
    TuneRequest,
    TuneResponse,
    ExportRequest,
    OptimizedLevelRequest,
    OptimizedLevelResponse,
    ErrorResponse,
)

__all__ = [
    # Level models
    "CardKind",
    "BombModifier",
    "CardTemplate",
    "LevelSettings",
    "LevelTemplate",
    "FavorableParams",
    "BoardGeometry",
    "TuningRequest",
    "LevelValidationError",
    "ConfigurationError",
    "parse_level",
    "CLOSE_WIN_MAX_REMAINING",
    "RANDOM_STACK_MARKER",
    # API schemas
    "FavorableConfig",
    "AnalyzeRequest",
    "AnalyzeResponse",
    "SimulateRequest",
    "SimulateResponse",
    "PlayoutRequest",
    "PlayoutResponse",
    "TuneRequest",
    "TuneResponse",
    "ExportRequest",
    "OptimizedLevelRequest",
    "OptimizedLevelResponse",
    "ErrorResponse",
]
