"""Tests for the favorable card generator."""
import random
from collections import Counter

import pytest

from tripeaks_tuner.core.board import SimCard
from tripeaks_tuner.core.favorable import (
    FavorableCardGenerator,
    GameView,
    adjacent_values,
    build_view,
    cyclic_distance,
    effective_probability,
    favorable_candidates,
    generate_value,
    urgent_bomb_values,
)
from tripeaks_tuner.models.level import CardKind, FavorableParams

# Chi-square critical value, 12 degrees of freedom, alpha = 0.001
CHI_SQUARE_CRITICAL_12 = 32.909


class TestAdjacency:
    """Tests for rank adjacency with wraparound."""

    def test_adjacent_values_wrap(self):
        assert adjacent_values(1) == [13, 2]
        assert adjacent_values(13) == [12, 1]
        assert adjacent_values(7) == [6, 8]

    def test_cyclic_distance(self):
        assert cyclic_distance(1, 13) == 1
        assert cyclic_distance(13, 1) == 1
        assert cyclic_distance(4, 4) == 0
        assert cyclic_distance(2, 9) == 6


class TestEffectiveProbability:
    """Tests for the boost rules."""

    def test_base_only(self):
        view = GameView(draw_pile_remaining=10)
        assert effective_probability(0.51, 0.25, 0.33, view) == pytest.approx(0.51)

    def test_final_stage_boost(self):
        view = GameView(draw_pile_remaining=2)
        assert effective_probability(0.51, 0.25, 0.33, view) == pytest.approx(0.76)

    def test_bomb_boost(self):
        view = GameView(draw_pile_remaining=10, urgent_bomb_values=[4])
        assert effective_probability(0.51, 0.25, 0.33, view) == pytest.approx(0.84)

    def test_capped_at_one(self):
        view = GameView(draw_pile_remaining=0, urgent_bomb_values=[4])
        assert effective_probability(0.51, 0.25, 0.33, view) == 1.0

    def test_all_boosts_at_one_stay_capped(self):
        view = GameView(draw_pile_remaining=0, urgent_bomb_values=[4])
        assert effective_probability(1.0, 1.0, 1.0, view) == 1.0

    @pytest.mark.parametrize("view", [
        GameView(draw_pile_remaining=10),
        GameView(draw_pile_remaining=1),
        GameView(draw_pile_remaining=10, urgent_bomb_values=[4]),
        GameView(draw_pile_remaining=1, urgent_bomb_values=[4]),
    ])
    @pytest.mark.parametrize("position", [0, 1, 2])
    def test_non_decreasing_in_each_input(self, view, position):
        steps = [i / 20 for i in range(21)]
        fixed = [0.51, 0.25, 0.33]

        results = []
        for step in steps:
            inputs = list(fixed)
            inputs[position] = step
            results.append(effective_probability(*inputs, view))

        assert all(later >= earlier for earlier, later in zip(results, results[1:]))
        assert all(0.0 <= p <= 1.0 for p in results)


class TestCandidates:
    """Tests for favorable candidate selection."""

    def test_priority_order_and_dedup(self):
        view = GameView(
            draw_pile_remaining=5,
            play_top=9,
            urgent_bomb_values=[4],
            playable_values=[5, 10],
        )

        assert favorable_candidates(view) == [3, 5, 4, 6, 9, 11, 8, 10]

    def test_empty_view_has_no_candidates(self):
        assert favorable_candidates(GameView(draw_pile_remaining=3)) == []

    def test_urgent_bombs_sorted_by_countdown(self):
        cards = [
            SimCard(0, "a", CardKind.VALUE, 0, 0, 0, value=3, face_up=True,
                    has_bomb=True, bomb_countdown=3),
            SimCard(1, "b", CardKind.VALUE, 0, 500, 0, value=9, face_up=True,
                    has_bomb=True, bomb_countdown=1),
            SimCard(2, "c", CardKind.VALUE, 0, 1000, 0, value=11, face_up=True,
                    has_bomb=True, bomb_countdown=5),
            SimCard(3, "d", CardKind.VALUE, 0, 1500, 0, value=2, face_up=False,
                    has_bomb=True, bomb_countdown=1),
        ]

        assert urgent_bomb_values(cards, 3) == [9, 3]

    def test_build_view_skips_locked_and_unresolved(self):
        cards = [
            SimCard(0, "v", CardKind.VALUE, 0, 0, 0, value=6, face_up=True),
            SimCard(1, "l", CardKind.LOCK, 0, 500, 0, face_up=True, locked=True),
            SimCard(2, "k", CardKind.KEY, 0, 1000, 0, face_up=True),
        ]

        view = build_view(cards, 4, 2, FavorableParams())
        assert view.playable_values == [6]
        assert view.play_top == 2
        assert view.draw_pile_remaining == 4


class TestGenerateValue:
    """Statistical tests for generate_value."""

    def test_zero_probability_is_uniform(self):
        rng = random.Random(20240101)
        view = GameView(draw_pile_remaining=5, play_top=7, playable_values=[3])
        draws = 13000

        counts = Counter(generate_value(0.0, view, rng) for _ in range(draws))

        assert set(counts) == set(range(1, 14))
        expected = draws / 13
        chi_square = sum((counts[v] - expected) ** 2 / expected for v in range(1, 14))
        assert chi_square < CHI_SQUARE_CRITICAL_12

    def test_full_probability_stays_in_candidates(self):
        rng = random.Random(7)
        view = GameView(draw_pile_remaining=5, play_top=10, playable_values=[5])
        candidates = set(favorable_candidates(view))

        for _ in range(5000):
            assert generate_value(1.0, view, rng) in candidates

    def test_full_probability_without_candidates_is_uniform_range(self):
        rng = random.Random(11)
        view = GameView(draw_pile_remaining=5)

        values = {generate_value(1.0, view, rng) for _ in range(2000)}
        assert values == set(range(1, 14))

    def test_empirical_favorable_rate(self):
        rng = random.Random(99)
        view = GameView(draw_pile_remaining=5, play_top=7)  # candidates 6, 8
        p = 0.51
        draws = 20000

        hits = sum(1 for _ in range(draws) if generate_value(p, view, rng) in (6, 8))

        expected = p + (1 - p) * 2 / 13
        assert hits / draws == pytest.approx(expected, abs=0.02)

    def test_same_seed_same_sequence(self):
        view = GameView(draw_pile_remaining=1, play_top=4, urgent_bomb_values=[12])
        rng_a, rng_b = random.Random(5), random.Random(5)
        first = [generate_value(0.6, view, rng_a) for _ in range(50)]
        second = [generate_value(0.6, view, rng_b) for _ in range(50)]

        assert first == second


class TestFavorableCardGenerator:
    """Tests for the bound generator."""

    def test_probability_for_uses_params(self):
        generator = FavorableCardGenerator(FavorableParams(base=0.2, final_boost=0.3))

        assert generator.probability_for(GameView(draw_pile_remaining=1)) == pytest.approx(0.5)
        assert generator.probability_for(GameView(draw_pile_remaining=9)) == pytest.approx(0.2)

    def test_next_value_targets_board(self):
        generator = FavorableCardGenerator(FavorableParams(base=1.0))
        cards = [SimCard(0, "v", CardKind.VALUE, 0, 0, 0, value=7, face_up=True)]
        rng = random.Random(3)

        values = {generator.next_value(cards, 10, None, rng) for _ in range(200)}
        assert values <= {6, 8}
