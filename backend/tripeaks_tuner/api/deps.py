"""API dependencies."""
from typing import Any, Dict

from fastapi import HTTPException

from ..config import Settings, get_settings
from ..core.analyzer import get_analyzer, LevelAnalyzer
from ..core.tuner import get_tuner, DifficultyTuner
from ..models.level import LevelTemplate, LevelValidationError, parse_level


def get_app_settings() -> Settings:
    """Dependency for application settings."""
    return get_settings()


def get_level_analyzer() -> LevelAnalyzer:
    """Dependency for level analyzer."""
    return get_analyzer()


def get_difficulty_tuner() -> DifficultyTuner:
    """Dependency for deck size tuner."""
    return get_tuner()


def parse_level_or_400(level_json: Dict[str, Any]) -> LevelTemplate:
    """Parse level JSON, turning validation problems into a 400."""
    try:
        return parse_level(level_json)
    except LevelValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid level: {e}")
