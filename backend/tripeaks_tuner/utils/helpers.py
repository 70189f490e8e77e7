"""Utility helper functions."""
from typing import Dict, Any, Optional, Tuple, Union
from pathlib import Path
import json

from ..models.level import LevelTemplate, LevelValidationError, parse_level


def validate_level_json(level_json: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate level JSON structure.

    Args:
        level_json: Level data to validate.

    Returns:
        Tuple of (is_valid, error_message).
    """
    try:
        parse_level(level_json)
    except LevelValidationError as e:
        return False, str(e)
    return True, None


def load_level_json(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a level file.

    Raises:
        FileNotFoundError: if the file does not exist.
        LevelValidationError: if the file is not valid JSON.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise LevelValidationError([f"{path.name}: invalid JSON ({e.msg} at line {e.lineno})"])


def load_level_file(path: Union[str, Path]) -> Tuple[Dict[str, Any], LevelTemplate]:
    """Read and parse a level file, returning both raw JSON and the template."""
    level_json = load_level_json(path)
    return level_json, parse_level(level_json)
