"""Heuristic autoplayer turn policy.

A fixed decision cascade over the legal candidates:
1. Defuse: play the most urgent bomb (countdown <= 2)
2. Unlock: play a key while any lock remains on the board
3. Zap: play the zap that clears the most cards, if it clears at least 3
4. Score: best of 10*tier + 20*uncovered + 5*bomb progress + 50*useful key
"""
from typing import List, Optional
from dataclasses import dataclass
from enum import Enum

from .board import (
    SimCard,
    DEFAULT_GEOMETRY,
    cards_in_row,
    has_locks,
    playable_cards,
    uncover_count,
)
from .favorable import cyclic_distance
from ..models.level import BoardGeometry


URGENT_BOMB_COUNTDOWN = 2
MIN_ZAP_CLEAR = 3

TIER_WEIGHT = 10
UNCOVER_WEIGHT = 20
BOMB_PROGRESS_WEIGHT = 5
USEFUL_KEY_BONUS = 50


class DecisionRule(str, Enum):
    """Which rule of the cascade picked the card."""
    URGENT_BOMB = "urgent_bomb"
    KEY_UNLOCK = "key_unlock"
    ZAP_CLEAR = "zap_clear"
    SCORE = "score"


@dataclass
class Decision:
    """Selected card plus the reason it was chosen."""
    card: SimCard
    rule: DecisionRule
    score: float = 0.0


def can_play(card: SimCard, play_top: Optional[int]) -> bool:
    """Check if a card may go onto the play pile.

    Keys and zaps always play, locked cards never do, value cards need a
    rank one step away from the play pile top (Ace and King wrap).
    """
    if card.locked:
        return False
    if card.is_key or card.is_zap:
        return True
    if card.value is None or play_top is None:
        return False
    return cyclic_distance(card.value, play_top) == 1


def legal_moves(
    cards: List[SimCard],
    play_top: Optional[int],
    geometry: BoardGeometry = DEFAULT_GEOMETRY,
) -> List[SimCard]:
    """Playable cards that can legally go onto the current play pile."""
    return [card for card in playable_cards(cards, geometry) if can_play(card, play_top)]


def score_card(
    card: SimCard,
    cards: List[SimCard],
    locks_remaining: bool,
    geometry: BoardGeometry = DEFAULT_GEOMETRY,
) -> float:
    """Heuristic value of playing `card` now."""
    score = TIER_WEIGHT * card.tier
    score += UNCOVER_WEIGHT * uncover_count(card, cards, geometry)
    if card.has_bomb:
        score += BOMB_PROGRESS_WEIGHT * (card.bomb_initial - card.bomb_countdown)
    if card.is_key and locks_remaining:
        score += USEFUL_KEY_BONUS
    return score


def decide(
    candidates: List[SimCard],
    cards: List[SimCard],
    geometry: BoardGeometry = DEFAULT_GEOMETRY,
) -> Optional[Decision]:
    """
    Select exactly one card from the legal candidates.

    Ties always fall back to arena order, so the choice is deterministic.

    Args:
        candidates: Legal, playable cards.
        cards: Full card arena (board state).
        geometry: Spatial thresholds.

    Returns:
        Decision, or None when there are no candidates (the caller draws).
    """
    if not candidates:
        return None
    candidates = sorted(candidates, key=lambda c: c.index)

    # Rule 1: defuse bombs
    urgent = [c for c in candidates if c.has_bomb and c.bomb_countdown <= URGENT_BOMB_COUNTDOWN]
    if urgent:
        card = min(urgent, key=lambda c: (c.bomb_countdown, -c.tier, c.index))
        return Decision(card=card, rule=DecisionRule.URGENT_BOMB)

    locks_remaining = has_locks(cards)

    # Rule 2: unlock
    if locks_remaining:
        keys = [c for c in candidates if c.is_key]
        if keys:
            card = min(keys, key=lambda c: c.index)
            return Decision(card=card, rule=DecisionRule.KEY_UNLOCK)

    # Rule 3: big row clears
    best_zap = None
    best_clear = 0
    for card in candidates:
        if not card.is_zap:
            continue
        clear = len(cards_in_row(card, cards, geometry))
        if clear > best_clear:
            best_zap, best_clear = card, clear
    if best_zap is not None and best_clear >= MIN_ZAP_CLEAR:
        return Decision(card=best_zap, rule=DecisionRule.ZAP_CLEAR, score=best_clear)

    # Rule 4: score everything else
    best_card = None
    best_score = float("-inf")
    for card in candidates:
        score = score_card(card, cards, locks_remaining, geometry)
        if score > best_score:
            best_card, best_score = card, score

    return Decision(card=best_card, rule=DecisionRule.SCORE, score=best_score)


def choose_card(
    candidates: List[SimCard],
    cards: List[SimCard],
    geometry: BoardGeometry = DEFAULT_GEOMETRY,
) -> Optional[SimCard]:
    decision = decide(candidates, cards, geometry)
    return decision.card if decision else None
