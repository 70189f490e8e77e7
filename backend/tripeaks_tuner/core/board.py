"""Board coverage model: which cards are playable and which get revealed.

Cards live in a flat arena (a list indexed by `SimCard.index`). Every
function here is a pure query or a targeted mutation over that arena, so
the same code serves a live board and the simulator.

Coverage rules:
- Card A covers card B when both are on the board, A.tier > B.tier and the
  planar distance between them is below the overlap threshold
- A card is playable when it is on the board, face up and uncovered
- Removing a card can uncover lower cards, which are then turned face up
"""
import math
import random
from typing import Callable, List, Optional
from dataclasses import dataclass

from ..models.level import (
    BoardGeometry,
    CardKind,
    CardTemplate,
    MIN_CARD_VALUE,
    MAX_CARD_VALUE,
)


DEFAULT_GEOMETRY = BoardGeometry()


@dataclass
class SimCard:
    """Mutable per-playout card state."""
    index: int
    card_id: str
    kind: CardKind
    tier: int
    x: float
    y: float
    value: Optional[int] = None  # None until resolved; always None for lock/key/zap
    on_board: bool = True
    face_up: bool = False
    locked: bool = False
    has_bomb: bool = False
    bomb_countdown: int = 0
    bomb_initial: int = 0

    @property
    def is_value(self) -> bool:
        return self.kind == CardKind.VALUE

    @property
    def is_key(self) -> bool:
        return self.kind == CardKind.KEY

    @property
    def is_zap(self) -> bool:
        return self.kind == CardKind.ZAP

    @property
    def is_lock(self) -> bool:
        return self.kind == CardKind.LOCK

    @property
    def needs_value(self) -> bool:
        """True while a value card still waits for its deferred value."""
        return self.is_value and self.value is None

    @classmethod
    def from_template(
        cls, index: int, template: CardTemplate, rng: random.Random
    ) -> "SimCard":
        """Instantiate a card for a new playout.

        Random face-up cards get a uniform value right away; random face-down
        cards stay unresolved so the generator can bias them when revealed.
        """
        value: Optional[int] = None
        if template.kind == CardKind.VALUE:
            if template.is_random:
                if template.face_up:
                    value = rng.randint(MIN_CARD_VALUE, MAX_CARD_VALUE)
            else:
                value = template.value

        bomb = template.bomb
        return cls(
            index=index,
            card_id=template.card_id,
            kind=template.kind,
            tier=template.tier,
            x=template.x,
            y=template.y,
            value=value,
            face_up=template.face_up,
            locked=template.kind == CardKind.LOCK,
            has_bomb=bomb is not None,
            bomb_countdown=bomb.timer if bomb else 0,
            bomb_initial=bomb.timer if bomb else 0,
        )


def create_sim_cards(templates: List[CardTemplate], rng: random.Random) -> List[SimCard]:
    """Build a fresh card arena from level templates."""
    return [SimCard.from_template(i, t, rng) for i, t in enumerate(templates)]


def distance(a: SimCard, b: SimCard) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def covers(
    upper: SimCard, lower: SimCard, geometry: BoardGeometry = DEFAULT_GEOMETRY
) -> bool:
    """Check whether `upper` physically covers `lower`."""
    if upper.index == lower.index:
        return False
    if not (upper.on_board and lower.on_board):
        return False
    if upper.tier <= lower.tier:
        return False
    return distance(upper, lower) < geometry.overlap_threshold


def coverers(
    card: SimCard, cards: List[SimCard], geometry: BoardGeometry = DEFAULT_GEOMETRY
) -> List[SimCard]:
    """All on-board cards currently covering `card`."""
    return [other for other in cards if covers(other, card, geometry)]


def is_covered(
    card: SimCard, cards: List[SimCard], geometry: BoardGeometry = DEFAULT_GEOMETRY
) -> bool:
    """True iff some other on-board card of strictly greater tier overlaps `card`."""
    for other in cards:
        if covers(other, card, geometry):
            return True
    return False


def playable_cards(
    cards: List[SimCard], geometry: BoardGeometry = DEFAULT_GEOMETRY
) -> List[SimCard]:
    """On-board, face-up, uncovered cards in arena order."""
    return [
        card for card in cards
        if card.on_board and card.face_up and not is_covered(card, cards, geometry)
    ]


def reveal_newly_uncovered(
    cards: List[SimCard],
    resolve: Optional[Callable[[SimCard], int]] = None,
    geometry: BoardGeometry = DEFAULT_GEOMETRY,
) -> List[SimCard]:
    """
    Turn face up every on-board, face-down card that is no longer covered.

    Deferred values are resolved through `resolve` before the card becomes
    visible. Cards are processed in arena order, so a card revealed earlier
    in the same pass already counts as visible when a later one resolves.

    Args:
        cards: Card arena.
        resolve: Callback returning a value for an unresolved card.
        geometry: Spatial thresholds.

    Returns:
        Cards revealed by this call (empty when nothing changed).
    """
    uncovered = [
        card for card in cards
        if card.on_board and not card.face_up and not is_covered(card, cards, geometry)
    ]

    for card in uncovered:
        if card.needs_value:
            if resolve is None:
                raise ValueError(f"Card '{card.card_id}' has no value and no resolver was given")
            card.value = resolve(card)
        card.face_up = True

    return uncovered


def uncover_count(
    card: SimCard, cards: List[SimCard], geometry: BoardGeometry = DEFAULT_GEOMETRY
) -> int:
    """Number of on-board cards whose only coverer is `card`."""
    count = 0
    for other in cards:
        if not other.on_board or other.index == card.index:
            continue
        if not covers(card, other, geometry):
            continue
        if len(coverers(other, cards, geometry)) == 1:
            count += 1
    return count


def cards_in_row(
    card: SimCard, cards: List[SimCard], geometry: BoardGeometry = DEFAULT_GEOMETRY
) -> List[SimCard]:
    """On-board cards sharing `card`'s row, excluding `card` itself."""
    return [
        other for other in cards
        if other.on_board
        and other.index != card.index
        and abs(other.y - card.y) < geometry.row_tolerance
    ]


def lock_cards(cards: List[SimCard]) -> List[SimCard]:
    return [card for card in cards if card.on_board and card.is_lock]


def has_locks(cards: List[SimCard]) -> bool:
    return any(card.on_board and card.is_lock for card in cards)


def cards_on_board(cards: List[SimCard]) -> int:
    return sum(1 for card in cards if card.on_board)
