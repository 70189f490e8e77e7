"""Shared fixtures: small hand-built level layouts."""
import pytest


def card_json(card_id, x, y, depth=0, card_type="value", value=7, face_up=True,
              random_value=False, bomb_timer=None):
    """Build one card entry in level JSON format."""
    modifiers = []
    if bomb_timer is not None:
        modifiers.append({"type": "bomb", "properties": {"timer": bomb_timer, "plays": 0}})
    return {
        "id": card_id,
        "type": card_type,
        "depth": depth,
        "x": x,
        "y": y,
        "angle": 0,
        "faceUp": face_up,
        "random": random_value,
        "value": value,
        "sequence": 0,
        "modifiers": modifiers,
    }


def level_json(cards, stack=None, level_id="test_level"):
    """Wrap cards into a complete level document."""
    return {
        "id": level_id,
        "version": "1.0",
        "cards": cards,
        "settings": {
            "level_number": 1,
            "background": "default",
            "cards_in_stack": stack if stack is not None else [-1] * 10,
            "star_1": 1000,
            "star_2": 2000,
            "star_3": 3000,
            "win_criteria": [{"type": "clear_all"}],
            "tags": [],
        },
    }


@pytest.fixture
def make_card():
    return card_json


@pytest.fixture
def make_level():
    return level_json


@pytest.fixture
def pyramid_level():
    """One face-up 5 (tier 1) covering two face-down random cards (tier 0)."""
    return level_json([
        card_json("base_left", 0, 0, depth=0, face_up=False, random_value=True, value=0),
        card_json("base_right", 200, 0, depth=0, face_up=False, random_value=True, value=0),
        card_json("top", 100, 0, depth=1, value=5),
    ], level_id="pyramid")


@pytest.fixture
def two_sevens_level():
    """Two isolated face-up 7s: clearing needs two separate plays onto 6/8."""
    return level_json([
        card_json("seven_a", 0, 0),
        card_json("seven_b", 600, 600),
    ], level_id="two_sevens")


@pytest.fixture
def zap_row_level():
    """
    20 cards: a 16-card row (zap, 13s, two bombs with timer 5) plus four
    isolated 7s. The zap clears its whole row, each 7 then needs its own
    draw, so every win at deck size 5 or 6 ends with <= 2 cards left.
    """
    cards = [card_json("zap", 0, 0, card_type="zap", value=0)]
    for i in range(1, 16):
        bomb_timer = 5 if i in (4, 11) else None
        cards.append(card_json(f"row_{i}", i * 100, 0, value=13, bomb_timer=bomb_timer))
    for i in range(4):
        cards.append(card_json(f"seven_{i}", 0, 300 * (i + 1)))
    return level_json(cards, level_id="zap_row")
