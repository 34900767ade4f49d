"""
Scoring helpers shared by the analyzers.
"""
import math
from dataclasses import asdict, is_dataclass
from typing import Any, Iterable


def round_half_up(value: float, ndigits: int = 0) -> float | int:
    """Round .5 away from zero for positive values (not banker's rounding)."""
    if ndigits == 0:
        return math.floor(value + 0.5)
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def clamp_score(value: float) -> int:
    """Round and clamp a sub-score into [0, 100]."""
    return max(0, min(100, round_half_up(value)))


def flatten_issues(*groups: Iterable[str]) -> tuple[str, ...]:
    return tuple(issue for group in groups for issue in group)


def weighted_score(parts: Iterable[tuple[int, float]]) -> int:
    """Rounded weighted mean of (score, weight) pairs, clamped to [0, 100].

    Weights are normalized by their sum so skipped checks drop out cleanly.
    """
    parts = list(parts)
    total_weight = sum(weight for _, weight in parts)
    if total_weight <= 0:
        return 0
    weighted = sum(score * weight for score, weight in parts)
    if math.isclose(total_weight, 1.0):
        return clamp_score(weighted)
    return clamp_score(weighted / total_weight)


def as_document(value: Any) -> Any:
    """Convert an analyzer result into plain JSON-compatible data."""
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, dict):
        return {key: as_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [as_document(item) for item in value]
    return value


class ResultDocument:
    """Mixin for frozen result dataclasses."""

    def to_dict(self) -> dict[str, Any]:
        return as_document(self)
