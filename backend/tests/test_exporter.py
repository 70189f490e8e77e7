"""Tests for result export and optimized level output."""
import json

import pytest

from tripeaks_tuner.core.exporter import (
    RESULT_COLUMNS,
    build_optimized_level,
    export_results_csv,
    export_run_csv,
    optimized_level_filename,
    write_optimized_level,
    write_run_csv,
)
from tripeaks_tuner.core.tuner import DifficultyTuner, OutcomeTally, TuningRun
from tripeaks_tuner.models.level import TuningRequest


def sample_run(cancelled=False):
    results = [
        OutcomeTally(games=100, wins=50, close_wins=20, moves_on_win=1234,
                     cards_remaining_on_win=150).to_result(10, 0.7),
        OutcomeTally(games=100, wins=60, close_wins=45, moves_on_win=1500,
                     cards_remaining_on_win=70).to_result(11, 0.7),
    ]
    optimal = DifficultyTuner().find_optimal_range(results, 0.7)
    return TuningRun(
        level_id="level_7",
        request=TuningRequest(min_deck_size=10, max_deck_size=11, simulations_per_size=100, seed=3),
        base_seed=3,
        results=results,
        optimal=optimal,
        cancelled=cancelled,
    )


class TestResultsCsv:
    """Tests for the tabular export."""

    def test_header_and_fixed_precision(self):
        run = sample_run()

        lines = export_results_csv(run.results, run.optimal).splitlines()

        assert lines[0] == ",".join(RESULT_COLUMNS)
        assert lines[1] == "10,100,50,20,0.5000,0.4000,24.68,3.00,false,false"
        assert lines[2] == "11,100,60,45,0.6000,0.7500,25.00,1.17,true,true"

    def test_rows_sorted_by_deck_size(self):
        run = sample_run()

        lines = export_results_csv(list(reversed(run.results))).splitlines()

        assert [line.split(",")[0] for line in lines[1:]] == ["10", "11"]
        assert all(line.endswith("false") for line in lines[1:])

    def test_custom_delimiter(self):
        run = sample_run()

        lines = export_results_csv(run.results, run.optimal, delimiter=";").splitlines()

        assert lines[0].startswith("deck_size;total_games;")
        assert lines[2].startswith("11;100;60;")

    def test_metadata_lines_prefixed(self):
        text = export_run_csv(sample_run())
        lines = text.splitlines()

        assert lines[0] == "# Simulation Metadata"
        assert "# Level: level_7" in lines
        assert "# Base Favorable Probability: 0.51" in lines
        assert "# Recommended Deck Size: 11" in lines
        header_index = lines.index(",".join(RESULT_COLUMNS))
        assert all(line.startswith("#") for line in lines[:header_index - 1])
        assert lines[header_index - 1] == ""

    def test_metadata_can_be_disabled(self):
        text = export_run_csv(sample_run(), include_metadata=False)

        assert text.splitlines()[0] == ",".join(RESULT_COLUMNS)

    def test_cancelled_run_is_flagged(self):
        text = export_run_csv(sample_run(cancelled=True))

        assert "# Run cancelled: partial results" in text.splitlines()

    def test_write_run_csv(self, tmp_path):
        path = write_run_csv(tmp_path / "out" / "results.csv", sample_run())

        assert path.exists()
        assert path.read_text(encoding="utf-8").startswith("# Simulation Metadata")


class TestOptimizedLevel:
    """Tests for the optimized level template."""

    def test_replaces_stack_without_touching_source(self, pyramid_level):
        optimized = build_optimized_level(pyramid_level, 24)

        assert optimized["settings"]["cards_in_stack"] == [-1] * 24
        assert pyramid_level["settings"]["cards_in_stack"] == [-1] * 10
        assert optimized["cards"] == pyramid_level["cards"]
        assert optimized["cards"] is not pyramid_level["cards"]

    def test_zero_deck(self, pyramid_level):
        assert build_optimized_level(pyramid_level, 0)["settings"]["cards_in_stack"] == []

    def test_negative_deck_rejected(self, pyramid_level):
        with pytest.raises(ValueError):
            build_optimized_level(pyramid_level, -1)

    def test_file_name(self):
        assert optimized_level_filename("levels/level_7.json", 24) == "level_7_optimized_24cards.json"

    def test_write_optimized_level(self, tmp_path, pyramid_level):
        path = write_optimized_level(tmp_path / "pyramid_optimized_12cards.json", pyramid_level, 12)

        with path.open(encoding="utf-8") as f:
            data = json.load(f)
        assert data["id"] == "pyramid"
        assert data["settings"]["cards_in_stack"] == [-1] * 12
