"""Static level layout analyzer."""
import random
from typing import Dict, List, Any, Optional, Set
from dataclasses import dataclass, field

from .board import DEFAULT_GEOMETRY, SimCard, coverers, create_sim_cards, is_covered
from ..models.level import BoardGeometry, CardKind, LevelTemplate, parse_level


@dataclass
class LevelMetrics:
    """Layout metrics extracted from a level template."""
    card_count: int = 0
    kind_counts: Dict[str, int] = field(default_factory=dict)
    tier_counts: Dict[int, int] = field(default_factory=dict)
    bomb_count: int = 0
    min_bomb_timer: Optional[int] = None
    random_card_ratio: float = 0.0
    face_up_count: int = 0
    playable_count: int = 0
    nominal_deck_size: int = 0
    avg_coverers: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "card_count": self.card_count,
            "kind_counts": self.kind_counts,
            "tier_counts": {str(tier): count for tier, count in self.tier_counts.items()},
            "bomb_count": self.bomb_count,
            "min_bomb_timer": self.min_bomb_timer,
            "random_card_ratio": round(self.random_card_ratio, 4),
            "face_up_count": self.face_up_count,
            "playable_count": self.playable_count,
            "nominal_deck_size": self.nominal_deck_size,
            "avg_coverers": round(self.avg_coverers, 2),
        }


@dataclass
class LayoutReport:
    """Analysis result: metrics plus designer-facing warnings."""
    level_id: str
    metrics: LevelMetrics
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level_id": self.level_id,
            "metrics": self.metrics.to_dict(),
            "warnings": self.warnings,
        }


class LevelAnalyzer:
    """Inspects a layout before any simulation is run."""

    def __init__(self, geometry: Optional[BoardGeometry] = None):
        self.geometry = geometry or DEFAULT_GEOMETRY

    def analyze(self, level: Any) -> LayoutReport:
        """
        Analyze a level layout.

        Args:
            level: LevelTemplate or raw level JSON.

        Returns:
            LayoutReport with metrics and warnings.

        Raises:
            LevelValidationError: if raw JSON does not parse.
        """
        if not isinstance(level, LevelTemplate):
            level = parse_level(level)

        # Values do not matter for layout queries
        cards = create_sim_cards(level.cards, random.Random(0))
        metrics = self._extract_metrics(level, cards)
        warnings = self._generate_warnings(cards)

        return LayoutReport(level_id=level.level_id, metrics=metrics, warnings=warnings)

    def _extract_metrics(self, level: LevelTemplate, cards: List[SimCard]) -> LevelMetrics:
        metrics = LevelMetrics(
            card_count=level.card_count,
            nominal_deck_size=level.settings.nominal_deck_size,
        )

        for kind in CardKind:
            metrics.kind_counts[kind.value] = 0
        for template in level.cards:
            metrics.kind_counts[template.kind.value] += 1
            metrics.tier_counts[template.tier] = metrics.tier_counts.get(template.tier, 0) + 1

        timers = [t.bomb.timer for t in level.cards if t.bomb is not None]
        metrics.bomb_count = len(timers)
        metrics.min_bomb_timer = min(timers) if timers else None

        if level.cards:
            random_cards = sum(1 for t in level.cards if t.kind == CardKind.VALUE and t.is_random)
            metrics.random_card_ratio = random_cards / len(level.cards)

        metrics.face_up_count = sum(1 for c in cards if c.face_up)
        metrics.playable_count = sum(
            1 for c in cards if c.face_up and not is_covered(c, cards, self.geometry)
        )

        cover_counts = [len(coverers(c, cards, self.geometry)) for c in cards]
        covered = [n for n in cover_counts if n > 0]
        metrics.avg_coverers = sum(covered) / len(covered) if covered else 0.0

        metrics.tier_counts = dict(sorted(metrics.tier_counts.items()))
        return metrics

    def _generate_warnings(self, cards: List[SimCard]) -> List[str]:
        warnings: List[str] = []

        hidden = [
            c.card_id for c in cards
            if not c.face_up and not is_covered(c, cards, self.geometry)
        ]
        if hidden:
            warnings.append(
                f"{len(hidden)} uncovered card(s) start face down and will be revealed "
                f"at setup: {', '.join(hidden)}"
            )

        has_lock = any(c.is_lock for c in cards)
        has_opener = any(c.is_key or c.is_zap for c in cards)
        if has_lock and not has_opener:
            warnings.append("Level has locks but no key or zap: it can never be cleared")

        for card in cards:
            if not (card.has_bomb and card.face_up):
                continue
            blockers = self._all_coverers(card, cards)
            if card.bomb_countdown <= len(blockers):
                warnings.append(
                    f"Bomb '{card.card_id}' (timer {card.bomb_countdown}) needs at least "
                    f"{len(blockers) + 1} moves to play and will explode first"
                )

        return warnings

    def _all_coverers(self, card: SimCard, cards: List[SimCard]) -> Set[int]:
        """Indices of every card that must go before `card` can be played."""
        seen: Set[int] = set()
        pending = [card]
        while pending:
            current = pending.pop()
            for other in coverers(current, cards, self.geometry):
                if other.index not in seen:
                    seen.add(other.index)
                    pending.append(other)
        return seen


# Singleton instance
_analyzer: Optional[LevelAnalyzer] = None


def get_analyzer() -> LevelAnalyzer:
    """Get or create analyzer singleton instance."""
    global _analyzer
    if _analyzer is None:
        _analyzer = LevelAnalyzer()
    return _analyzer
