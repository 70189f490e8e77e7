"""Monte-Carlo deck size tuner.

For every candidate deck size the tuner plays many independent games and
aggregates how often the autoplayer wins "close" (<= 2 draw pile cards
left). It then picks the range of deck sizes whose close-win rate meets
the target and recommends the size nearest the middle of that range.

Every playout is a pure function of (level, deck size, parameters, seed),
so playouts run on a thread pool without locking. Seeds are derived from
(base seed, deck size, playout index), which makes a run reproducible
regardless of scheduling order.
"""
import hashlib
import logging
import secrets
import threading
import time
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from concurrent.futures import ThreadPoolExecutor, as_completed

from .playout import GameOutcome, LossReason, PlayoutEngine
from ..models.level import (
    BoardGeometry,
    FavorableParams,
    LevelTemplate,
    TuningRequest,
)

logger = logging.getLogger(__name__)


# Minimum wins for a deck size to be considered by the fallback selection
FALLBACK_MIN_WINS = 5

ProgressCallback = Callable[[int, int, int], None]


def derive_seed(base_seed: int, deck_size: int, index: int) -> int:
    """Deterministic, well-spread seed for one playout."""
    digest = hashlib.blake2b(
        f"{base_seed}:{deck_size}:{index}".encode("ascii"), digest_size=8
    ).digest()
    return int.from_bytes(digest, "big")


def new_base_seed() -> int:
    return secrets.randbits(63)


@dataclass
class OutcomeTally:
    """Commutative accumulator of playout outcomes for one deck size."""
    games: int = 0
    wins: int = 0
    close_wins: int = 0
    moves_on_win: int = 0
    cards_remaining_on_win: int = 0
    losses: Dict[str, int] = field(default_factory=dict)

    def add(self, outcome: GameOutcome) -> None:
        self.games += 1
        if outcome.won:
            self.wins += 1
            self.moves_on_win += outcome.moves
            self.cards_remaining_on_win += outcome.cards_remaining
            if outcome.close_win:
                self.close_wins += 1
        elif outcome.loss_reason is not None:
            reason = outcome.loss_reason.value
            self.losses[reason] = self.losses.get(reason, 0) + 1

    def merge(self, other: "OutcomeTally") -> None:
        self.games += other.games
        self.wins += other.wins
        self.close_wins += other.close_wins
        self.moves_on_win += other.moves_on_win
        self.cards_remaining_on_win += other.cards_remaining_on_win
        for reason, count in other.losses.items():
            self.losses[reason] = self.losses.get(reason, 0) + count

    def to_result(self, deck_size: int, target_close_win_rate: float) -> "DeckSizeResult":
        wins = self.wins
        close_win_rate = self.close_wins / wins if wins > 0 else 0.0
        return DeckSizeResult(
            deck_size=deck_size,
            total_games=self.games,
            wins=wins,
            close_wins=self.close_wins,
            win_rate=wins / self.games if self.games > 0 else 0.0,
            close_win_rate=close_win_rate,
            avg_moves_on_win=self.moves_on_win / wins if wins > 0 else 0.0,
            avg_cards_remaining_on_win=self.cards_remaining_on_win / wins if wins > 0 else 0.0,
            meets_target=wins > 0 and close_win_rate >= target_close_win_rate,
            loss_reasons=dict(self.losses),
        )


@dataclass
class DeckSizeResult:
    """Aggregate statistics for one tested deck size."""
    deck_size: int
    total_games: int
    wins: int
    close_wins: int
    win_rate: float
    close_win_rate: float  # share of wins that were close wins
    avg_moves_on_win: float
    avg_cards_remaining_on_win: float
    meets_target: bool
    loss_reasons: Dict[str, int] = field(default_factory=dict)

    @property
    def runaway_count(self) -> int:
        return self.loss_reasons.get(LossReason.RUNAWAY.value, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deck_size": self.deck_size,
            "total_games": self.total_games,
            "wins": self.wins,
            "close_wins": self.close_wins,
            "win_rate": round(self.win_rate, 4),
            "close_win_rate": round(self.close_win_rate, 4),
            "avg_moves_on_win": round(self.avg_moves_on_win, 2),
            "avg_cards_remaining_on_win": round(self.avg_cards_remaining_on_win, 2),
            "meets_target": self.meets_target,
            "loss_reasons": self.loss_reasons,
        }


@dataclass
class OptimalRange:
    """Qualifying deck size range and the recommended size within it."""
    min_size: int
    max_size: int
    qualifying_sizes: List[int]
    recommended_size: int
    recommended_stats: DeckSizeResult
    meets_target: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_size": self.min_size,
            "max_size": self.max_size,
            "qualifying_sizes": self.qualifying_sizes,
            "recommended_size": self.recommended_size,
            "recommended_stats": self.recommended_stats.to_dict(),
            "meets_target": self.meets_target,
        }


@dataclass
class TuningRun:
    """Everything produced by one tuning run, complete or cancelled."""
    level_id: str
    request: TuningRequest
    base_seed: int
    results: List[DeckSizeResult]
    optimal: Optional[OptimalRange]
    cancelled: bool = False
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level_id": self.level_id,
            "request": self.request.to_dict(),
            "base_seed": self.base_seed,
            "results": [r.to_dict() for r in self.results],
            "optimal": self.optimal.to_dict() if self.optimal else None,
            "cancelled": self.cancelled,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


def _run_batch(
    engine: PlayoutEngine, deck_size: int, base_seed: int, start: int, stop: int
) -> OutcomeTally:
    """Play games [start, stop) of one deck size."""
    tally = OutcomeTally()
    for index in range(start, stop):
        tally.add(engine.play(deck_size, derive_seed(base_seed, deck_size, index)))
    return tally


def _batch_bounds(total: int, batches: int) -> List[tuple]:
    batches = max(1, min(batches, total))
    size, extra = divmod(total, batches)
    bounds = []
    start = 0
    for i in range(batches):
        stop = start + size + (1 if i < extra else 0)
        bounds.append((start, stop))
        start = stop
    return bounds


class DifficultyTuner:
    """
    Searches the deck size axis for the range hitting a close-win target.

    Workflow:
    1. `run_for_size` plays N seeded games for one deck size
    2. `run_range` sweeps every size in the request (cancellable between sizes)
    3. `find_optimal_range` selects the qualifying range and recommendation
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers

    def run_for_size(
        self,
        level: LevelTemplate,
        deck_size: int,
        simulation_count: int,
        favorable: Optional[FavorableParams] = None,
        target_close_win_rate: float = 0.7,
        base_seed: Optional[int] = None,
        geometry: Optional[BoardGeometry] = None,
        turn_cap: int = 1000,
        executor: Optional[ThreadPoolExecutor] = None,
        batches: Optional[int] = None,
    ) -> DeckSizeResult:
        """
        Play `simulation_count` independent games at one deck size.

        Args:
            level: Parsed level template.
            deck_size: Draw pile size to test.
            simulation_count: Number of playouts.
            favorable: Favorable draw parameters.
            target_close_win_rate: Close-win rate a size must reach.
            base_seed: Seed the per-playout seeds derive from.
            geometry: Spatial thresholds.
            turn_cap: Safety cap on turns per playout.
            executor: Pool to spread the playouts over (a temporary one is
                created when omitted).
            batches: Number of pool tasks (defaults to max_workers).

        Returns:
            DeckSizeResult with the aggregated statistics.
        """
        if base_seed is None:
            base_seed = new_base_seed()
        engine = PlayoutEngine(level, favorable, geometry, turn_cap)

        batches = batches or self.max_workers
        if batches <= 1 or simulation_count <= 1:
            tally = _run_batch(engine, deck_size, base_seed, 0, simulation_count)
        elif executor is not None:
            tally = self._run_batches(executor, engine, deck_size, base_seed, simulation_count, batches)
        else:
            with ThreadPoolExecutor(max_workers=batches) as pool:
                tally = self._run_batches(pool, engine, deck_size, base_seed, simulation_count, batches)

        result = tally.to_result(deck_size, target_close_win_rate)
        if result.runaway_count:
            logger.warning(
                "Deck %d: %d playouts hit the turn cap", deck_size, result.runaway_count
            )
        return result

    def run_range(
        self,
        level: LevelTemplate,
        request: TuningRequest,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> TuningRun:
        """
        Sweep every deck size in the request and pick the optimal range.

        Cancellation is checked between deck sizes; the returned run holds
        whatever finished before the cancel, with `cancelled=True`.
        """
        started = time.perf_counter()
        base_seed = request.seed if request.seed is not None else new_base_seed()
        sizes = request.deck_sizes
        favorable = request.favorable

        logger.info(
            "Tuning level '%s': deck sizes %d-%d, %d simulations each",
            level.level_id, request.min_deck_size, request.max_deck_size,
            request.simulations_per_size,
        )
        logger.info(
            "Favorable probability %.2f (+%.2f final stage, +%.2f urgent bomb), "
            "target close-win rate %.0f%%, seed %d",
            favorable.base, favorable.final_boost, favorable.bomb_boost,
            request.target_close_win_rate * 100, base_seed,
        )

        results: List[DeckSizeResult] = []
        cancelled = False

        with ThreadPoolExecutor(max_workers=request.max_workers) as executor:
            for done, deck_size in enumerate(sizes):
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    logger.warning(
                        "Tuning cancelled after %d of %d deck sizes", done, len(sizes)
                    )
                    break

                result = self.run_for_size(
                    level,
                    deck_size,
                    request.simulations_per_size,
                    favorable=favorable,
                    target_close_win_rate=request.target_close_win_rate,
                    base_seed=base_seed,
                    geometry=request.geometry,
                    turn_cap=request.turn_cap,
                    executor=executor,
                    batches=request.max_workers,
                )
                results.append(result)
                self._log_result(result)

                if progress is not None:
                    progress(deck_size, done + 1, len(sizes))

        optimal = None
        if results:
            optimal = self.find_optimal_range(results, request.target_close_win_rate)

        return TuningRun(
            level_id=level.level_id,
            request=request,
            base_seed=base_seed,
            results=results,
            optimal=optimal,
            cancelled=cancelled,
            elapsed_seconds=time.perf_counter() - started,
        )

    def find_optimal_range(
        self, results: List[DeckSizeResult], target_close_win_rate: float
    ) -> OptimalRange:
        """
        Select the qualifying deck size range and a recommended size.

        Qualifying sizes meet the close-win target. The recommendation is
        the qualifying size closest to their mean (ties go to the smaller
        size). Without any qualifying size the best fallback is returned
        with `meets_target=False`.

        Raises:
            ValueError: if `results` is empty.
        """
        if not results:
            raise ValueError("No tuning results to select from")

        qualifying = sorted(
            (r for r in results if r.meets_target), key=lambda r: r.deck_size
        )

        if not qualifying:
            fallback = self._fallback(results)
            logger.warning(
                "No deck size reached a %.0f%% close-win rate, falling back to deck %d "
                "(close-win rate %.1f%%)",
                target_close_win_rate * 100, fallback.deck_size, fallback.close_win_rate * 100,
            )
            return OptimalRange(
                min_size=fallback.deck_size,
                max_size=fallback.deck_size,
                qualifying_sizes=[fallback.deck_size],
                recommended_size=fallback.deck_size,
                recommended_stats=fallback,
                meets_target=False,
            )

        sizes = [r.deck_size for r in qualifying]
        mean_size = sum(sizes) / len(sizes)
        recommended = min(
            qualifying, key=lambda r: (abs(r.deck_size - mean_size), r.deck_size)
        )

        logger.info(
            "Qualifying range %d-%d (%d sizes), recommended deck size %d: "
            "win rate %.1f%%, close-win rate %.1f%%, avg cards remaining %.2f",
            sizes[0], sizes[-1], len(sizes), recommended.deck_size,
            recommended.win_rate * 100, recommended.close_win_rate * 100,
            recommended.avg_cards_remaining_on_win,
        )

        return OptimalRange(
            min_size=sizes[0],
            max_size=sizes[-1],
            qualifying_sizes=sizes,
            recommended_size=recommended.deck_size,
            recommended_stats=recommended,
            meets_target=True,
        )

    def _run_batches(
        self,
        executor: ThreadPoolExecutor,
        engine: PlayoutEngine,
        deck_size: int,
        base_seed: int,
        simulation_count: int,
        batches: int,
    ) -> OutcomeTally:
        tally = OutcomeTally()
        futures = [
            executor.submit(_run_batch, engine, deck_size, base_seed, start, stop)
            for start, stop in _batch_bounds(simulation_count, batches)
        ]
        for future in as_completed(futures):
            tally.merge(future.result())
        return tally

    def _fallback(self, results: List[DeckSizeResult]) -> DeckSizeResult:
        viable = [r for r in results if r.wins >= FALLBACK_MIN_WINS]
        if viable:
            return min(viable, key=lambda r: (-r.close_win_rate, r.deck_size))
        return min(results, key=lambda r: r.deck_size)

    def _log_result(self, result: DeckSizeResult) -> None:
        marker = "+" if result.meets_target else " "
        if result.wins > 0:
            close_info = (
                f"close wins {result.close_wins}/{result.wins} ({result.close_win_rate:.1%})"
            )
        else:
            close_info = "close wins n/a"
        logger.info(
            "%s deck %3d: wins %d/%d (%.1f%%), %s",
            marker, result.deck_size, result.wins, result.total_games,
            result.win_rate * 100, close_info,
        )


# Singleton instance
_tuner: Optional[DifficultyTuner] = None


def get_tuner() -> DifficultyTuner:
    """Get or create tuner singleton instance."""
    global _tuner
    if _tuner is None:
        _tuner = DifficultyTuner()
    return _tuner
