"""Export tuning results: tabular CSV and optimized level JSON."""
import csv
import io
import json
import logging
from copy import deepcopy
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Any, Optional, Union

from .tuner import DeckSizeResult, OptimalRange, TuningRun
from ..models.level import RANDOM_STACK_MARKER

logger = logging.getLogger(__name__)


RESULT_COLUMNS = [
    "deck_size",
    "total_games",
    "wins",
    "close_wins",
    "win_rate",
    "close_win_rate",
    "avg_moves_on_win",
    "avg_cards_remaining_on_win",
    "meets_target",
    "is_recommended",
]


def result_row(result: DeckSizeResult, recommended_size: Optional[int]) -> List[str]:
    """Format one result row with fixed decimal precision."""
    return [
        str(result.deck_size),
        str(result.total_games),
        str(result.wins),
        str(result.close_wins),
        f"{result.win_rate:.4f}",
        f"{result.close_win_rate:.4f}",
        f"{result.avg_moves_on_win:.2f}",
        f"{result.avg_cards_remaining_on_win:.2f}",
        "true" if result.meets_target else "false",
        "true" if result.deck_size == recommended_size else "false",
    ]


def run_metadata(run: TuningRun) -> List[str]:
    """Comment lines describing a tuning run."""
    request = run.request
    favorable = request.favorable
    lines = [
        "Simulation Metadata",
        f"Level: {run.level_id}",
        f"Base Favorable Probability: {favorable.base:.2f}",
        f"Final Stage Boost: {favorable.final_boost:.2f} "
        f"(draw pile <= {favorable.final_stage_threshold})",
        f"Urgent Bomb Boost: {favorable.bomb_boost:.2f} "
        f"(bomb countdown <= {favorable.bomb_urgency_threshold})",
        f"Target Close Win Rate: {request.target_close_win_rate:.0%}",
        f"Simulations Per Size: {request.simulations_per_size}",
        f"Seed: {run.base_seed}",
    ]
    if run.optimal is not None:
        lines.append(f"Optimal Deck Range: {run.optimal.min_size} to {run.optimal.max_size}")
        lines.append(
            f"Recommended Deck Size: {run.optimal.recommended_size}"
            + ("" if run.optimal.meets_target else " (target not met)")
        )
    if run.cancelled:
        lines.append("Run cancelled: partial results")
    lines.append(f"Export Date: {datetime.now():%Y-%m-%d %H:%M:%S}")
    return lines


def export_results_csv(
    results: List[DeckSizeResult],
    optimal: Optional[OptimalRange] = None,
    delimiter: str = ",",
    metadata: Optional[List[str]] = None,
) -> str:
    """
    Render per-size results as delimited text, one row per deck size.

    Args:
        results: Per-size statistics.
        optimal: Recommendation used to flag the recommended row.
        delimiter: Field separator.
        metadata: Optional lines written first as `# ` comments.

    Returns:
        The exported text.
    """
    buffer = io.StringIO()
    if metadata:
        for line in metadata:
            buffer.write(f"# {line}\n")
        buffer.write("\n")

    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    writer.writerow(RESULT_COLUMNS)
    recommended_size = optimal.recommended_size if optimal else None
    for result in sorted(results, key=lambda r: r.deck_size):
        writer.writerow(result_row(result, recommended_size))
    return buffer.getvalue()


def export_run_csv(run: TuningRun, delimiter: str = ",", include_metadata: bool = True) -> str:
    metadata = run_metadata(run) if include_metadata else None
    return export_results_csv(run.results, run.optimal, delimiter, metadata)


def write_run_csv(
    path: Union[str, Path], run: TuningRun, delimiter: str = ",", include_metadata: bool = True
) -> Path:
    """Write a tuning run's result table to disk."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_run_csv(run, delimiter, include_metadata), encoding="utf-8")
    logger.info("Results exported to %s", path)
    return path


def build_optimized_level(level_json: Dict[str, Any], deck_size: int) -> Dict[str, Any]:
    """Copy of the level with an all-random draw pile of `deck_size` cards."""
    if deck_size < 0:
        raise ValueError("deck_size must be >= 0")
    optimized = deepcopy(level_json)
    settings = optimized.setdefault("settings", {})
    settings["cards_in_stack"] = [RANDOM_STACK_MARKER] * deck_size
    return optimized


def optimized_level_filename(source: Union[str, Path], deck_size: int) -> str:
    """`level_7.json` -> `level_7_optimized_24cards.json`."""
    stem = Path(source).stem
    return f"{stem}_optimized_{deck_size}cards.json"


def write_optimized_level(
    path: Union[str, Path], level_json: Dict[str, Any], deck_size: int
) -> Path:
    """Write the optimized level JSON and log the deck size change."""
    path = Path(path)
    optimized = build_optimized_level(level_json, deck_size)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(optimized, f, indent=2, ensure_ascii=False)

    original_size = len((level_json.get("settings") or {}).get("cards_in_stack") or [])
    logger.info(
        "Optimized level written to %s (deck %d -> %d, %+d cards)",
        path, original_size, deck_size, deck_size - original_size,
    )
    return path
