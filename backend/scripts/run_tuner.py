#!/usr/bin/env python3
"""Deck size tuning run for one level file.

Plays N seeded games per deck size, prints the per-size table and the
recommended deck size, and optionally writes the CSV table and an
optimized copy of the level.

Usage:
    python run_tuner.py LEVEL.json [--min 10] [--max 50] [--sims 500]
                       [--csv results.csv] [--optimized out/]

Ctrl-C stops after the deck size currently running; the partial results
are still reported and written.
"""

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tripeaks_tuner.config import get_settings
from tripeaks_tuner.core.exporter import (
    optimized_level_filename,
    write_optimized_level,
    write_run_csv,
)
from tripeaks_tuner.core.logging_config import setup_logging
from tripeaks_tuner.core.tuner import DifficultyTuner, TuningRun
from tripeaks_tuner.models.level import (
    ConfigurationError,
    FavorableParams,
    LevelValidationError,
    TuningRequest,
)
from tripeaks_tuner.utils.helpers import load_level_file

logger = logging.getLogger("run_tuner")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Find the deck size that hits a close-win target")
    parser.add_argument("level", type=Path, help="Level JSON file")
    parser.add_argument("--min", dest="min_size", type=int, default=10,
                        help="Smallest deck size tested (default: 10)")
    parser.add_argument("--max", dest="max_size", type=int, default=50,
                        help="Largest deck size tested (default: 50)")
    parser.add_argument("--sims", type=int, default=500,
                        help="Simulations per deck size (default: 500)")
    parser.add_argument("--target", type=float, default=0.7,
                        help="Target close-win rate (default: 0.7)")
    parser.add_argument("--base", type=float, default=0.51,
                        help="Base favorable probability (default: 0.51)")
    parser.add_argument("--final-boost", type=float, default=0.25,
                        help="Final stage boost (default: 0.25)")
    parser.add_argument("--bomb-boost", type=float, default=0.33,
                        help="Urgent bomb boost (default: 0.33)")
    parser.add_argument("--final-threshold", type=int, default=2,
                        help="Draw pile cards left for the final stage (default: 2)")
    parser.add_argument("--bomb-threshold", type=int, default=3,
                        help="Bomb countdown that counts as urgent (default: 3)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Base seed for a reproducible run")
    parser.add_argument("--workers", type=int, default=None,
                        help="Worker threads (default: from settings)")
    parser.add_argument("--csv", type=Path, default=None,
                        help="Write the result table to this CSV file")
    parser.add_argument("--optimized", type=Path, default=None,
                        help="Write the optimized level to this file or directory")
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default: from settings)")
    return parser


def run_cancellable(tuner: DifficultyTuner, level, request: TuningRequest) -> TuningRun:
    """Run the sweep on a worker thread so Ctrl-C can cancel between deck sizes."""
    cancel_event = threading.Event()
    outcome = {}

    def progress(deck_size: int, done: int, total: int) -> None:
        logger.debug("Progress %d/%d (deck %d)", done, total, deck_size)

    def target() -> None:
        try:
            outcome["run"] = tuner.run_range(level, request, cancel_event, progress)
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=target, name="tuning-run")
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.2)
    except KeyboardInterrupt:
        print("\nCancelling after the current deck size...")
        cancel_event.set()
        worker.join()
    if "error" in outcome:
        raise outcome["error"]
    return outcome["run"]


def print_summary(run: TuningRun) -> None:
    print(f"\n{'='*60}")
    print(f"TUNING SUMMARY: {run.level_id}")
    print(f"{'='*60}")
    print(f"{'Deck':>5} {'Wins':>7} {'Win%':>7} {'Close%':>7} {'AvgMoves':>9} {'AvgLeft':>8}")
    for r in run.results:
        marker = "*" if r.meets_target else " "
        print(
            f"{r.deck_size:>5} {r.wins:>7} {r.win_rate:>7.1%} {r.close_win_rate:>7.1%} "
            f"{r.avg_moves_on_win:>9.2f} {r.avg_cards_remaining_on_win:>8.2f} {marker}"
        )
    print(f"{'='*60}")
    if run.optimal is not None:
        optimal = run.optimal
        print(f"Optimal range: {optimal.min_size}-{optimal.max_size}")
        print(f"Recommended deck size: {optimal.recommended_size}"
              + ("" if optimal.meets_target else " (target not met)"))
    if run.cancelled:
        print("Run was cancelled: results are partial")
    print(f"Seed: {run.base_seed}  Elapsed: {run.elapsed_seconds:.1f}s")


def resolve_optimized_path(target: Path, level_path: Path, deck_size: int) -> Path:
    if target.is_dir() or not target.suffix:
        return target / optimized_level_filename(level_path, deck_size)
    return target


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level, settings.log_file)

    try:
        level_json, level = load_level_file(args.level)
    except FileNotFoundError:
        logger.error("Level file not found: %s", args.level)
        return 1
    except LevelValidationError as e:
        logger.error("Invalid level %s:", args.level)
        for error in e.errors:
            logger.error("  - %s", error)
        return 1

    try:
        request = TuningRequest(
            min_deck_size=args.min_size,
            max_deck_size=args.max_size,
            simulations_per_size=args.sims,
            target_close_win_rate=args.target,
            favorable=FavorableParams(
                base=args.base,
                final_boost=args.final_boost,
                bomb_boost=args.bomb_boost,
                final_stage_threshold=args.final_threshold,
                bomb_urgency_threshold=args.bomb_threshold,
            ),
            geometry=settings.geometry(),
            seed=args.seed if args.seed is not None else settings.default_seed,
            max_workers=args.workers or settings.max_workers,
            turn_cap=settings.turn_cap,
        )
    except ConfigurationError as e:
        logger.error("Invalid parameters: %s", e)
        return 2

    tuner = DifficultyTuner(max_workers=request.max_workers)
    run = run_cancellable(tuner, level, request)
    print_summary(run)

    if args.csv is not None and run.results:
        write_run_csv(args.csv, run)
        print(f"\nResults saved to: {args.csv}")

    if args.optimized is not None and run.optimal is not None:
        path = resolve_optimized_path(args.optimized, args.level, run.optimal.recommended_size)
        write_optimized_level(path, level_json, run.optimal.recommended_size)
        print(f"Optimized level saved to: {path}")

    return 130 if run.cancelled else 0


if __name__ == "__main__":
    sys.exit(main())
