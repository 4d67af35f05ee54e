"""Weighted-fold helpers shared by the aggregation stages."""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from . import config
from .models import ConfidenceLevel


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def clean_token(value: object) -> str:
    """Lower-case and trim a free-text value; non-strings become empty."""

    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def tally(contributions: Iterable[Tuple[str, float]]) -> Dict[str, float]:
    """Fold ``(key, weight)`` pairs into per-key totals.

    Keys keep first-seen order. Totals use ``math.fsum`` so the result does
    not depend on the order contributions arrive in.
    """

    grouped: Dict[str, List[float]] = {}
    for key, weight in contributions:
        grouped.setdefault(key, []).append(weight)
    return {key: math.fsum(weights) for key, weights in grouped.items()}


def total_of(contributions: Iterable[Tuple[str, float]]) -> float:
    return math.fsum(weight for _, weight in contributions)


def rank(scores: Dict[str, float]) -> List[Tuple[str, float]]:
    """Highest score first; ties keep first-seen order (``sorted`` is stable)."""

    return sorted(scores.items(), key=lambda item: item[1], reverse=True)


def ratio_to_confidence(ratio: float) -> ConfidenceLevel:
    if ratio >= config.HIGH_RATIO_THRESHOLD:
        return ConfidenceLevel.HIGH
    if ratio >= config.MEDIUM_RATIO_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def weighted_vote(
    contributions: Sequence[Tuple[str, float]],
) -> Tuple[Optional[str], float]:
    """Return the winning key and its share of the total weight.

    ``(None, 0.0)`` when nothing voted or all weights are zero.
    """

    scores = tally(contributions)
    total = total_of(contributions)
    if not scores or total <= 0:
        return None, 0.0
    winner, winning_score = rank(scores)[0]
    return winner, winning_score / total


def distribution(scores: Dict[str, float], total: float) -> Dict[str, float]:
    if total <= 0:
        return {key: 0.0 for key in scores}
    return {key: score / total for key, score in scores.items()}


def round_distribution(
    values: Dict[str, float], decimals: int = config.DISTRIBUTION_DECIMALS
) -> Dict[str, float]:
    """Round shares so the rounded values still add up to the rounded total.

    Largest-remainder apportionment; equal remainders go to the smaller key so
    the outcome never depends on insertion order.
    """

    scale = 10 ** decimals
    scaled = {key: max(value, 0.0) * scale for key, value in values.items()}
    floors = {key: math.floor(value) for key, value in scaled.items()}
    leftover = int(round(math.fsum(scaled.values()))) - sum(floors.values())
    by_remainder = sorted(scaled, key=lambda key: (-(scaled[key] - floors[key]), key))
    for key in by_remainder[: max(leftover, 0)]:
        floors[key] += 1
    return {key: floors[key] / scale for key in values}


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))
