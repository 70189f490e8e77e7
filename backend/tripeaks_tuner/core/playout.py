"""Playout engine: drives one simulated game from setup to win or loss.

Game rules (clear-all peaks solitaire):
- One card from the draw pile starts the play pile
- A playable board card whose rank is one step from the play pile top
  (Ace and King wrap) may be played; keys and zaps always play
- A key removes every lock on the board, a zap removes its whole row
- When nothing can be played the next draw pile card becomes the top
- Every move (play or draw) ticks visible bombs; a bomb reaching zero loses
- Clearing every board card wins; winning with <= 2 cards left in the
  draw pile is a close win
"""
import logging
import random
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field
from enum import Enum

from .board import (
    SimCard,
    DEFAULT_GEOMETRY,
    cards_in_row,
    cards_on_board,
    create_sim_cards,
    lock_cards,
    reveal_newly_uncovered,
)
from .favorable import FavorableCardGenerator
from .policy import Decision, decide, legal_moves
from ..models.level import (
    BoardGeometry,
    FavorableParams,
    LevelTemplate,
    CLOSE_WIN_MAX_REMAINING,
)

logger = logging.getLogger(__name__)


DEFAULT_TURN_CAP = 1000


class GamePhase(str, Enum):
    SETUP = "setup"
    PLAYING = "playing"
    WON = "won"
    LOST = "lost"


class LossReason(str, Enum):
    """Why a playout was lost."""
    BOMB = "bomb"
    STUCK = "stuck"  # no legal play and the draw pile is empty
    RUNAWAY = "runaway"  # hit the turn cap


@dataclass
class DrawPile:
    """Draw pile slots (None = not yet resolved) and a draw cursor."""
    slots: List[Optional[int]]
    cursor: int = 0

    @classmethod
    def unresolved(cls, size: int) -> "DrawPile":
        return cls(slots=[None] * size)

    @property
    def size(self) -> int:
        return len(self.slots)

    @property
    def remaining(self) -> int:
        return len(self.slots) - self.cursor

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.slots)


@dataclass
class MoveRecord:
    """One recorded engine action (only kept when recording is enabled)."""
    move: int
    action: str  # "play" or "draw"
    play_top: Optional[int]
    card_id: Optional[str] = None
    rule: Optional[str] = None
    removed: List[str] = field(default_factory=list)
    revealed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "move": self.move,
            "action": self.action,
            "play_top": self.play_top,
            "card_id": self.card_id,
            "rule": self.rule,
            "removed": self.removed,
            "revealed": self.revealed,
        }


@dataclass
class GameState:
    """Mutable state of one playout."""
    cards: List[SimCard]
    draw_pile: DrawPile
    play_top: Optional[int] = None
    moves: int = 0
    turns: int = 0
    phase: GamePhase = GamePhase.SETUP
    loss_reason: Optional[LossReason] = None
    history: Optional[List[MoveRecord]] = None

    @property
    def is_over(self) -> bool:
        return self.phase in (GamePhase.WON, GamePhase.LOST)


@dataclass
class GameOutcome:
    """Terminal record of one playout."""
    won: bool
    close_win: bool
    cards_remaining: int
    moves: int
    loss_reason: Optional[LossReason] = None
    history: Optional[List[MoveRecord]] = None

    @classmethod
    def from_state(cls, state: GameState) -> "GameOutcome":
        won = state.phase == GamePhase.WON
        remaining = state.draw_pile.remaining
        return cls(
            won=won,
            close_win=won and remaining <= CLOSE_WIN_MAX_REMAINING,
            cards_remaining=remaining,
            moves=state.moves,
            loss_reason=None if won else state.loss_reason,
            history=state.history,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "won": self.won,
            "close_win": self.close_win,
            "cards_remaining": self.cards_remaining,
            "moves": self.moves,
            "loss_reason": self.loss_reason.value if self.loss_reason else None,
        }
        if self.history is not None:
            data["history"] = [record.to_dict() for record in self.history]
        return data


class PlayoutEngine:
    """
    Plays complete games of one level with the heuristic autoplayer.

    The engine itself only holds read-only configuration; each call to
    `play` builds its own cards, draw pile and RNG, so one engine can be
    shared by many worker threads.
    """

    def __init__(
        self,
        level: LevelTemplate,
        favorable: Optional[FavorableParams] = None,
        geometry: Optional[BoardGeometry] = None,
        turn_cap: int = DEFAULT_TURN_CAP,
    ):
        self.level = level
        self.geometry = geometry or DEFAULT_GEOMETRY
        self.generator = FavorableCardGenerator(favorable, self.geometry)
        self.turn_cap = turn_cap

    def play(
        self,
        deck_size: int,
        seed: Optional[int] = None,
        draw_pile_spec: Optional[List[Optional[int]]] = None,
        record: bool = False,
    ) -> GameOutcome:
        """
        Play one game to completion.

        Args:
            deck_size: Draw pile size (ignored when draw_pile_spec is given).
            seed: RNG seed for this playout.
            draw_pile_spec: Optional fixed stack, None entries are random.
            record: Keep a move-by-move history on the outcome.

        Returns:
            GameOutcome for the finished game.
        """
        rng = random.Random(seed)
        state = self.setup(deck_size, rng, draw_pile_spec, record)

        while not state.is_over:
            if state.turns >= self.turn_cap:
                state.phase = GamePhase.LOST
                state.loss_reason = LossReason.RUNAWAY
                logger.warning(
                    "Playout of level '%s' hit the turn cap (%d turns, deck %d, seed %s)",
                    self.level.level_id, self.turn_cap, state.draw_pile.size, seed,
                )
                break
            self.step(state, rng)
            state.turns += 1

        return GameOutcome.from_state(state)

    def setup(
        self,
        deck_size: int,
        rng: random.Random,
        draw_pile_spec: Optional[List[Optional[int]]] = None,
        record: bool = False,
    ) -> GameState:
        """Build fresh cards and draw pile, then draw the starting card."""
        cards = create_sim_cards(self.level.cards, rng)
        if draw_pile_spec is not None:
            pile = DrawPile(slots=list(draw_pile_spec))
        else:
            pile = DrawPile.unresolved(deck_size)

        state = GameState(
            cards=cards,
            draw_pile=pile,
            history=[] if record else None,
        )

        if not pile.exhausted:
            state.play_top = self._take_from_pile(state, rng)

        reveal_newly_uncovered(cards, lambda card: self._resolve(state, rng), self.geometry)

        state.phase = GamePhase.PLAYING
        self._check_win(state)
        return state

    def step(self, state: GameState, rng: random.Random) -> None:
        """Advance the game by one turn: play the chosen card or draw."""
        candidates = legal_moves(state.cards, state.play_top, self.geometry)
        decision = decide(candidates, state.cards, self.geometry)

        if decision is not None:
            self._play_card(state, decision, rng)
        elif not state.draw_pile.exhausted:
            self._draw(state, rng)
        else:
            state.phase = GamePhase.LOST
            state.loss_reason = LossReason.STUCK

    def _resolve(self, state: GameState, rng: random.Random) -> int:
        return self.generator.next_value(
            state.cards, state.draw_pile.remaining, state.play_top, rng
        )

    def _take_from_pile(self, state: GameState, rng: random.Random) -> int:
        """Advance the draw cursor, resolving the slot on the spot if needed."""
        pile = state.draw_pile
        value = pile.slots[pile.cursor]
        if value is None:
            value = self._resolve(state, rng)
            pile.slots[pile.cursor] = value
        pile.cursor += 1
        return value

    def _play_card(self, state: GameState, decision: Decision, rng: random.Random) -> None:
        card = decision.card
        removed: List[SimCard] = []

        if card.is_key:
            removed = lock_cards(state.cards)
        elif card.is_zap:
            removed = cards_in_row(card, state.cards, self.geometry)

        for other in removed:
            other.on_board = False
        card.on_board = False

        if card.is_value:
            state.play_top = card.value

        revealed = reveal_newly_uncovered(
            state.cards, lambda c: self._resolve(state, rng), self.geometry
        )
        self._tick_bombs(state)
        state.moves += 1

        if state.history is not None:
            state.history.append(MoveRecord(
                move=state.moves,
                action="play",
                play_top=state.play_top,
                card_id=card.card_id,
                rule=decision.rule.value,
                removed=[c.card_id for c in removed],
                revealed=[c.card_id for c in revealed],
            ))

        self._check_win(state)

    def _draw(self, state: GameState, rng: random.Random) -> None:
        state.play_top = self._take_from_pile(state, rng)
        self._tick_bombs(state)
        state.moves += 1

        if state.history is not None:
            state.history.append(MoveRecord(
                move=state.moves, action="draw", play_top=state.play_top
            ))

        self._check_win(state)

    def _tick_bombs(self, state: GameState) -> None:
        """Every move costs each visible bomb one tick."""
        exploded = False
        for card in state.cards:
            if card.on_board and card.face_up and card.has_bomb:
                card.bomb_countdown -= 1
                if card.bomb_countdown <= 0:
                    exploded = True
        if exploded:
            state.phase = GamePhase.LOST
            state.loss_reason = LossReason.BOMB

    def _check_win(self, state: GameState) -> None:
        if state.phase == GamePhase.LOST:
            return
        if cards_on_board(state.cards) == 0:
            state.phase = GamePhase.WON


def simulate_game(
    level: LevelTemplate,
    deck_size: int,
    seed: Optional[int] = None,
    favorable: Optional[FavorableParams] = None,
    geometry: Optional[BoardGeometry] = None,
    turn_cap: int = DEFAULT_TURN_CAP,
) -> GameOutcome:
    """Convenience wrapper: play a single game with a throwaway engine."""
    engine = PlayoutEngine(level, favorable, geometry, turn_cap)
    return engine.play(deck_size, seed)
