"""Tests for the board coverage model."""
import random

import pytest

from tripeaks_tuner.core.board import (
    SimCard,
    cards_in_row,
    covers,
    create_sim_cards,
    is_covered,
    playable_cards,
    reveal_newly_uncovered,
    uncover_count,
)
from tripeaks_tuner.models.level import BoardGeometry, CardKind, parse_level


def sim_card(index, x, y, tier=0, kind=CardKind.VALUE, value=7, face_up=True):
    return SimCard(
        index=index, card_id=f"c{index}", kind=kind, tier=tier,
        x=x, y=y, value=value, face_up=face_up,
    )


class TestCoverage:
    """Tests for covers / is_covered."""

    def test_higher_tier_within_threshold_covers(self):
        lower = sim_card(0, 0, 0, tier=0)
        upper = sim_card(1, 100, 0, tier=1)

        assert covers(upper, lower)
        assert is_covered(lower, [lower, upper])
        assert not is_covered(upper, [lower, upper])

    def test_same_tier_never_covers(self):
        a = sim_card(0, 0, 0, tier=2)
        b = sim_card(1, 10, 0, tier=2)

        assert not is_covered(a, [a, b])
        assert not is_covered(b, [a, b])

    def test_distance_at_threshold_does_not_cover(self):
        lower = sim_card(0, 0, 0, tier=0)
        upper = sim_card(1, 150, 0, tier=1)

        assert not covers(upper, lower)

    def test_uses_euclidean_distance(self):
        lower = sim_card(0, 0, 0, tier=0)
        upper = sim_card(1, 100, 100, tier=1)  # ~141.4 apart

        assert covers(upper, lower)
        assert not covers(upper, lower, BoardGeometry(overlap_threshold=120.0))

    def test_removed_card_no_longer_covers(self):
        lower = sim_card(0, 0, 0, tier=0)
        upper = sim_card(1, 50, 0, tier=1)
        upper.on_board = False

        assert not is_covered(lower, [lower, upper])

    def test_covered_until_every_coverer_is_removed(self):
        lower = sim_card(0, 0, 0, tier=0)
        coverers = [
            sim_card(1, 60, 0, tier=1),
            sim_card(2, -60, 0, tier=1),
            sim_card(3, 0, 80, tier=2),
            sim_card(4, 0, -100, tier=3),
        ]
        cards = [lower] + coverers

        for coverer in coverers:
            assert is_covered(lower, cards)
            coverer.on_board = False

        assert not is_covered(lower, cards)

    def test_playable_cards_in_arena_order(self):
        cards = [
            sim_card(0, 0, 0, tier=0),
            sim_card(1, 1000, 0, tier=0, face_up=False),
            sim_card(2, 2000, 0, tier=0),
            sim_card(3, 50, 0, tier=1),
        ]

        assert [c.index for c in playable_cards(cards)] == [2, 3]


class TestReveal:
    """Tests for reveal_newly_uncovered."""

    def test_reveals_and_resolves(self):
        hidden = sim_card(0, 0, 0, tier=0, value=None, face_up=False)
        top = sim_card(1, 50, 0, tier=1, value=5)
        cards = [hidden, top]

        assert reveal_newly_uncovered(cards, lambda c: 9) == []

        top.on_board = False
        revealed = reveal_newly_uncovered(cards, lambda c: 9)

        assert revealed == [hidden]
        assert hidden.face_up is True
        assert hidden.value == 9

    def test_idempotent(self):
        cards = [sim_card(0, 0, 0, value=None, face_up=False)]
        calls = []

        def resolve(card):
            calls.append(card.index)
            return 3

        reveal_newly_uncovered(cards, resolve)
        assert reveal_newly_uncovered(cards, resolve) == []
        assert calls == [0]

    def test_missing_resolver_raises(self):
        cards = [sim_card(0, 0, 0, value=None, face_up=False)]

        with pytest.raises(ValueError):
            reveal_newly_uncovered(cards)

    def test_fixed_value_needs_no_resolver(self):
        cards = [sim_card(0, 0, 0, value=4, face_up=False)]

        assert reveal_newly_uncovered(cards) == cards


class TestRowsAndUncover:
    """Tests for zap rows and uncover counts."""

    def test_cards_in_row_within_tolerance(self):
        zap = sim_card(0, 0, 100, kind=CardKind.ZAP, value=None)
        cards = [
            zap,
            sim_card(1, 300, 110),
            sim_card(2, 600, 129),
            sim_card(3, 900, 130),
            sim_card(4, 1200, 300),
        ]

        assert [c.index for c in cards_in_row(zap, cards)] == [1, 2]

    def test_uncover_count_only_counts_sole_coverer(self):
        left = sim_card(0, 0, 0, tier=0, face_up=False)
        right = sim_card(1, 200, 0, tier=0, face_up=False)
        top_a = sim_card(2, 50, 0, tier=1)
        top_b = sim_card(3, 150, 0, tier=1)
        cards = [left, right, top_a, top_b]

        # top_a covers left alone; right is covered by top_b only
        assert uncover_count(top_a, cards) == 1
        assert uncover_count(top_b, cards) == 1

        peak = sim_card(4, 100, 0, tier=2)
        cards.append(peak)
        assert uncover_count(peak, cards) == 2


class TestCreateSimCards:
    """Tests for instantiating templates."""

    def test_face_down_random_stays_unresolved(self, pyramid_level):
        level = parse_level(pyramid_level)
        cards = create_sim_cards(level.cards, random.Random(1))

        assert cards[0].value is None
        assert cards[0].needs_value
        assert cards[2].value == 5

    def test_face_up_random_resolved_uniformly(self, make_card, make_level):
        level = parse_level(make_level([
            make_card("r", 0, 0, random_value=True, value=0, face_up=True),
        ]))
        cards = create_sim_cards(level.cards, random.Random(3))

        assert 1 <= cards[0].value <= 13

    def test_lock_and_bomb_state(self, make_card, make_level):
        level = parse_level(make_level([
            make_card("lock", 0, 0, card_type="lock", value=0),
            make_card("bomb", 500, 0, bomb_timer=4),
        ]))
        cards = create_sim_cards(level.cards, random.Random(0))

        assert cards[0].locked is True
        assert cards[0].value is None
        assert cards[1].has_bomb is True
        assert cards[1].bomb_countdown == 4
