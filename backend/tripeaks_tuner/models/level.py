"""Level data models: card templates, level settings and tuning parameters."""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
from enum import Enum

logger = logging.getLogger(__name__)


# Card values run Ace (1) .. King (13)
MIN_CARD_VALUE = 1
MAX_CARD_VALUE = 13

# Marker used in settings.cards_in_stack for a random draw-pile slot
RANDOM_STACK_MARKER = -1

# A win with this many cards (or fewer) left in the draw pile is a close win
CLOSE_WIN_MAX_REMAINING = 2


class LevelValidationError(ValueError):
    """Raised when a level template is malformed.

    Carries every problem found so a level designer can fix them in one pass.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) if self.errors else "invalid level")


class ConfigurationError(ValueError):
    """Raised for out-of-range simulation or tuning parameters."""


class CardKind(str, Enum):
    """Card kind enumeration (level JSON `type` field)."""
    VALUE = "value"
    LOCK = "lock"
    KEY = "key"
    ZAP = "zap"


@dataclass(frozen=True)
class BombModifier:
    """Bomb modifier attached to a card."""
    timer: int
    plays: int = 0


@dataclass(frozen=True)
class CardTemplate:
    """Immutable card description loaded from a level file."""
    card_id: str
    kind: CardKind
    tier: int  # `depth` in level JSON, higher tiers sit on top
    x: float
    y: float
    face_up: bool = False
    is_random: bool = False
    value: int = 0  # ignored when is_random
    angle: int = 0
    sequence: int = 0
    bomb: Optional[BombModifier] = None

    @property
    def position(self) -> tuple:
        return (self.x, self.y)

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to level JSON card format."""
        data: Dict[str, Any] = {
            "id": self.card_id,
            "type": self.kind.value,
            "depth": self.tier,
            "x": self.x,
            "y": self.y,
            "angle": self.angle,
            "faceUp": self.face_up,
            "random": self.is_random,
            "value": self.value,
            "sequence": self.sequence,
            "modifiers": [],
        }
        if self.bomb is not None:
            data["modifiers"].append({
                "type": "bomb",
                "properties": {"timer": self.bomb.timer, "plays": self.bomb.plays},
            })
        return data


@dataclass(frozen=True)
class LevelSettings:
    """Level settings block."""
    cards_in_stack: List[int]
    level_number: int = 0
    background: str = ""
    star_thresholds: tuple = (0, 0, 0)
    win_criteria: List[str] = field(default_factory=lambda: ["clear_all"])
    tags: List[str] = field(default_factory=list)

    @property
    def nominal_deck_size(self) -> int:
        return len(self.cards_in_stack)


@dataclass(frozen=True)
class LevelTemplate:
    """A parsed level: card templates plus settings.

    `raw` keeps the original JSON so exports can round-trip fields this
    model does not interpret.
    """
    level_id: str
    version: str
    cards: List[CardTemplate]
    settings: LevelSettings
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def card_count(self) -> int:
        return len(self.cards)

    def draw_pile_spec(self) -> List[Optional[int]]:
        """Level stack as optional values (None for random slots)."""
        return [
            None if v == RANDOM_STACK_MARKER else v
            for v in self.settings.cards_in_stack
        ]


@dataclass
class FavorableParams:
    """Favorable draw probabilities and the thresholds that trigger boosts."""
    base: float = 0.51
    final_boost: float = 0.25
    bomb_boost: float = 0.33
    final_stage_threshold: int = 2  # draw pile cards remaining
    bomb_urgency_threshold: int = 3  # bomb countdown

    def __post_init__(self):
        for name in ("base", "final_boost", "bomb_boost"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value!r}")
        for name in ("final_stage_threshold", "bomb_urgency_threshold"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base": self.base,
            "final_boost": self.final_boost,
            "bomb_boost": self.bomb_boost,
            "final_stage_threshold": self.final_stage_threshold,
            "bomb_urgency_threshold": self.bomb_urgency_threshold,
        }


@dataclass
class BoardGeometry:
    """Spatial constants coupled to the level coordinate scale."""
    overlap_threshold: float = 150.0
    row_tolerance: float = 30.0

    def __post_init__(self):
        if self.overlap_threshold <= 0:
            raise ConfigurationError("overlap_threshold must be positive")
        if self.row_tolerance <= 0:
            raise ConfigurationError("row_tolerance must be positive")


@dataclass
class TuningRequest:
    """Parameters for a deck-size tuning run."""
    min_deck_size: int = 10
    max_deck_size: int = 50
    simulations_per_size: int = 500
    target_close_win_rate: float = 0.7
    favorable: FavorableParams = field(default_factory=FavorableParams)
    geometry: BoardGeometry = field(default_factory=BoardGeometry)
    seed: Optional[int] = None
    max_workers: int = 4
    turn_cap: int = 1000

    def __post_init__(self):
        if self.min_deck_size < 0:
            raise ConfigurationError("min_deck_size must be >= 0")
        if self.max_deck_size < self.min_deck_size:
            raise ConfigurationError(
                f"max_deck_size ({self.max_deck_size}) < min_deck_size ({self.min_deck_size})"
            )
        if self.simulations_per_size <= 0:
            raise ConfigurationError("simulations_per_size must be positive")
        if not 0.0 <= self.target_close_win_rate <= 1.0:
            raise ConfigurationError("target_close_win_rate must be within [0, 1]")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be >= 1")
        if self.turn_cap < 1:
            raise ConfigurationError("turn_cap must be >= 1")

    @property
    def deck_sizes(self) -> List[int]:
        return list(range(self.min_deck_size, self.max_deck_size + 1))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_deck_size": self.min_deck_size,
            "max_deck_size": self.max_deck_size,
            "simulations_per_size": self.simulations_per_size,
            "target_close_win_rate": self.target_close_win_rate,
            "favorable": self.favorable.to_dict(),
            "seed": self.seed,
            "max_workers": self.max_workers,
            "turn_cap": self.turn_cap,
        }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _optional_int(data: Dict[str, Any], key: str, label: str, errors: List[str]) -> int:
    """Read an optional integer field; absent or null means 0."""
    value = data.get(key)
    if value is None:
        return 0
    if not _is_int(value):
        errors.append(f"{label}: '{key}' must be an integer (got {value!r})")
        return 0
    return value


def _optional_bool(data: Dict[str, Any], key: str, label: str, errors: List[str]) -> bool:
    """Read an optional boolean flag; absent or null means False."""
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        errors.append(f"{label}: '{key}' must be true or false (got {value!r})")
        return False
    return value


def _parse_bomb(card_id: str, modifiers: Any, errors: List[str]) -> Optional[BombModifier]:
    """Extract the bomb modifier from a card's modifier list."""
    if modifiers is None:
        return None
    if not isinstance(modifiers, list):
        errors.append(f"Card '{card_id}': 'modifiers' must be a list")
        return None

    bomb = None
    for modifier in modifiers:
        if not isinstance(modifier, dict) or not modifier.get("type"):
            errors.append(f"Card '{card_id}': modifier missing 'type' field")
            continue
        if modifier["type"] != "bomb":
            logger.warning("Card '%s': unknown modifier type '%s' ignored", card_id, modifier["type"])
            continue
        properties = modifier.get("properties")
        if not isinstance(properties, dict):
            errors.append(f"Card '{card_id}': bomb modifier missing 'properties'")
            continue
        timer = properties.get("timer")
        if not isinstance(timer, int) or isinstance(timer, bool) or timer <= 0:
            errors.append(f"Card '{card_id}': bomb timer must be > 0 (got {timer!r})")
            continue
        plays = properties.get("plays")
        if plays is None:
            plays = 0
        elif not _is_int(plays) or plays < 0:
            errors.append(f"Card '{card_id}': bomb plays must be an integer >= 0 (got {plays!r})")
            continue
        bomb = BombModifier(timer=timer, plays=plays)
    return bomb


def _parse_card(index: int, data: Any, seen_ids: set, errors: List[str]) -> Optional[CardTemplate]:
    if not isinstance(data, dict):
        errors.append(f"Card [{index}]: must be an object")
        return None

    card_id = data.get("id")
    if not card_id or not isinstance(card_id, str):
        errors.append(f"Card [{index}]: missing 'id' field")
        card_id = f"#{index}"
    elif card_id in seen_ids:
        errors.append(f"Card [{index}]: duplicate card id '{card_id}'")
    else:
        seen_ids.add(card_id)

    start = len(errors)

    kind = None
    card_type = data.get("type")
    if not card_type:
        errors.append(f"Card '{card_id}': missing 'type' field")
    else:
        try:
            kind = CardKind(card_type)
        except ValueError:
            errors.append(
                f"Card '{card_id}': unknown type '{card_type}' "
                f"(valid: {', '.join(k.value for k in CardKind)})"
            )

    depth = data.get("depth")
    if not isinstance(depth, int) or isinstance(depth, bool) or depth < 0:
        errors.append(f"Card '{card_id}': invalid depth {depth!r} (must be an integer >= 0)")

    coords = []
    for axis in ("x", "y"):
        coord = data.get(axis)
        if not isinstance(coord, (int, float)) or isinstance(coord, bool):
            errors.append(f"Card '{card_id}': missing or invalid '{axis}' coordinate")
        else:
            coords.append(float(coord))

    label = f"Card '{card_id}'"
    is_random = _optional_bool(data, "random", label, errors)
    face_up = _optional_bool(data, "faceUp", label, errors)
    angle = _optional_int(data, "angle", label, errors)
    sequence = _optional_int(data, "sequence", label, errors)

    value = data.get("value", 0)
    if kind == CardKind.VALUE and not is_random:
        if not _is_int(value) or not MIN_CARD_VALUE <= value <= MAX_CARD_VALUE:
            errors.append(
                f"Card '{card_id}': value {value!r} outside {MIN_CARD_VALUE}-{MAX_CARD_VALUE}"
            )

    bomb = _parse_bomb(card_id, data.get("modifiers"), errors)

    if len(errors) > start:
        return None

    return CardTemplate(
        card_id=card_id,
        kind=kind,
        tier=depth,
        x=coords[0],
        y=coords[1],
        face_up=face_up,
        is_random=is_random,
        value=value if _is_int(value) else 0,
        angle=angle,
        sequence=sequence,
        bomb=bomb,
    )


def _parse_settings(data: Any, errors: List[str]) -> Optional[LevelSettings]:
    if not isinstance(data, dict):
        errors.append("'settings' object is missing")
        return None

    stack = data.get("cards_in_stack")
    if not isinstance(stack, list):
        errors.append("'cards_in_stack' is missing")
        return None
    if not stack:
        errors.append("'cards_in_stack' is empty")
        return None
    if any(
        not _is_int(v) or (v != RANDOM_STACK_MARKER and not MIN_CARD_VALUE <= v <= MAX_CARD_VALUE)
        for v in stack
    ):
        errors.append("'cards_in_stack' contains invalid card values (must be -1 or 1-13)")
        return None

    label = "Settings"
    start = len(errors)
    win_criteria = data.get("win_criteria") or []
    if not isinstance(win_criteria, list):
        errors.append(f"{label}: 'win_criteria' must be a list (got {win_criteria!r})")
        win_criteria = []
    stars = tuple(_optional_int(data, f"star_{i}", label, errors) for i in (1, 2, 3))
    level_number = _optional_int(data, "level_number", label, errors)
    background = data.get("background") or ""
    if not isinstance(background, str):
        errors.append(f"{label}: 'background' must be a string (got {background!r})")
    tags = data.get("tags") or []
    if not isinstance(tags, list):
        errors.append(f"{label}: 'tags' must be a list (got {tags!r})")
    if len(errors) > start:
        return None

    criteria = [c.get("type", "") for c in win_criteria if isinstance(c, dict)]
    if not criteria:
        logger.warning("'win_criteria' is missing or empty, defaulting to clear_all")
        criteria = ["clear_all"]
    elif any(c != "clear_all" for c in criteria):
        logger.warning("Win criteria %s treated as clear_all", criteria)

    if any(s <= 0 for s in stars):
        logger.warning("Star thresholds seem invalid: %s", stars)

    return LevelSettings(
        cards_in_stack=list(stack),
        level_number=level_number,
        background=background,
        star_thresholds=stars,
        win_criteria=criteria,
        tags=list(tags),
    )


def parse_level(level_json: Dict[str, Any]) -> LevelTemplate:
    """
    Parse and validate level JSON into a LevelTemplate.

    Args:
        level_json: Level data as loaded from a level file.

    Returns:
        LevelTemplate ready for simulation.

    Raises:
        LevelValidationError: listing every problem found.
    """
    if not isinstance(level_json, dict):
        raise LevelValidationError(["Level data must be an object"])

    errors: List[str] = []

    cards_data = level_json.get("cards")
    cards: List[CardTemplate] = []
    if not isinstance(cards_data, list):
        errors.append("'cards' array is missing")
    elif not cards_data:
        errors.append("'cards' array is empty")
    else:
        seen_ids: set = set()
        for i, card_data in enumerate(cards_data):
            card = _parse_card(i, card_data, seen_ids, errors)
            if card is not None:
                cards.append(card)

    settings = _parse_settings(level_json.get("settings"), errors)

    if errors:
        raise LevelValidationError(errors)

    if not level_json.get("id"):
        logger.warning("'id' field is missing or empty")
    if not level_json.get("version"):
        logger.warning("'version' field is missing or empty")

    return LevelTemplate(
        level_id=str(level_json.get("id") or ""),
        version=str(level_json.get("version") or ""),
        cards=cards,
        settings=settings,
        raw=level_json,
    )
