"""Favorable card generator with dynamic probability.

Random draws are biased toward values the current board "wants" while
staying probabilistic. The same functions serve live play and simulation:
callers pass an explicit `GameView` snapshot and their own RNG.
"""
import random
from typing import List, Optional
from dataclasses import dataclass, field

from .board import SimCard, playable_cards, DEFAULT_GEOMETRY
from ..models.level import (
    BoardGeometry,
    FavorableParams,
    MIN_CARD_VALUE,
    MAX_CARD_VALUE,
)


RANK_COUNT = MAX_CARD_VALUE - MIN_CARD_VALUE + 1


@dataclass(frozen=True)
class GameView:
    """Read-only snapshot of the state the generator looks at."""
    draw_pile_remaining: int
    play_top: Optional[int] = None
    # Most urgent first
    urgent_bomb_values: List[int] = field(default_factory=list)
    playable_values: List[int] = field(default_factory=list)


def cyclic_distance(a: int, b: int) -> int:
    """Distance between two ranks on the 13-value ring (Ace wraps to King)."""
    diff = abs(a - b) % RANK_COUNT
    return min(diff, RANK_COUNT - diff)


def adjacent_values(value: int) -> List[int]:
    """The two ranks one step below and above `value`, with wraparound."""
    lower = value - 1 if value > MIN_CARD_VALUE else MAX_CARD_VALUE
    higher = value + 1 if value < MAX_CARD_VALUE else MIN_CARD_VALUE
    return [lower, higher]


def urgent_bomb_values(
    cards: List[SimCard], urgency_threshold: int
) -> List[int]:
    """Values of visible bombs about to go off, most urgent first."""
    bombs = [
        card for card in cards
        if card.on_board
        and card.face_up
        and card.has_bomb
        and card.value is not None
        and card.bomb_countdown <= urgency_threshold
    ]
    bombs.sort(key=lambda c: (c.bomb_countdown, c.index))
    return [card.value for card in bombs]


def build_view(
    cards: List[SimCard],
    draw_pile_remaining: int,
    play_top: Optional[int],
    params: FavorableParams,
    geometry: BoardGeometry = DEFAULT_GEOMETRY,
) -> GameView:
    """Snapshot a card arena for the generator."""
    playable_values = [
        card.value for card in playable_cards(cards, geometry)
        if card.is_value and not card.locked and card.value is not None
    ]
    return GameView(
        draw_pile_remaining=draw_pile_remaining,
        play_top=play_top,
        urgent_bomb_values=urgent_bomb_values(cards, params.bomb_urgency_threshold),
        playable_values=playable_values,
    )


def effective_probability(
    base: float,
    final_boost: float,
    bomb_boost: float,
    view: GameView,
    final_stage_threshold: int = 2,
) -> float:
    """
    Favorable probability after situational boosts.

    - Final stage: the draw pile is nearly exhausted
    - Urgent bomb: a visible bomb is close to exploding

    The result is capped at 1.0.
    """
    probability = base
    if view.draw_pile_remaining <= final_stage_threshold:
        probability += final_boost
    if view.urgent_bomb_values:
        probability += bomb_boost
    return min(probability, 1.0)


def favorable_candidates(view: GameView) -> List[int]:
    """
    Values adjacent to what the board needs, in priority order.

    Priority: urgent bombs, then playable value cards, then the play pile.
    Priority decides which values get in; selection among them is uniform.
    """
    candidates: List[int] = []

    targets = list(view.urgent_bomb_values) + list(view.playable_values)
    if view.play_top is not None:
        targets.append(view.play_top)

    for target in targets:
        for value in adjacent_values(target):
            if value not in candidates:
                candidates.append(value)

    return candidates


def generate_value(probability: float, view: GameView, rng: random.Random) -> int:
    """
    Draw a card value, favorable with the given probability.

    The unfavorable branch is checked first so that `probability` is exactly
    the empirical favorable rate.
    """
    if rng.random() >= probability:
        return rng.randint(MIN_CARD_VALUE, MAX_CARD_VALUE)

    candidates = favorable_candidates(view)
    if candidates:
        return rng.choice(candidates)

    return rng.randint(MIN_CARD_VALUE, MAX_CARD_VALUE)


class FavorableCardGenerator:
    """Binds favorable parameters to the pure generator functions."""

    def __init__(
        self,
        params: Optional[FavorableParams] = None,
        geometry: BoardGeometry = DEFAULT_GEOMETRY,
    ):
        self.params = params or FavorableParams()
        self.geometry = geometry

    def probability_for(self, view: GameView) -> float:
        return effective_probability(
            self.params.base,
            self.params.final_boost,
            self.params.bomb_boost,
            view,
            self.params.final_stage_threshold,
        )

    def next_value(
        self,
        cards: List[SimCard],
        draw_pile_remaining: int,
        play_top: Optional[int],
        rng: random.Random,
    ) -> int:
        """Generate one value for the given board state."""
        view = build_view(cards, draw_pile_remaining, play_top, self.params, self.geometry)
        return generate_value(self.probability_for(view), view, rng)
