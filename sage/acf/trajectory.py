"""Coarse emotional-direction label from recent energy readings."""

from __future__ import annotations

from collections.abc import Sequence

from sage.acf.models import TrajectorySnapshot, TrajectoryStance

TREND_WINDOW = 3


def _score(energy: int) -> float:
    """Map energy 0-100 onto an outcome score in [-1, 1]."""
    return (max(0, min(100, energy)) - 50) / 50


def compute_trajectory(energies: Sequence[int]) -> TrajectorySnapshot:
    """Classify the recent energy history.

    Scores are averaged over the whole window; the trend is the mean of the
    last few readings. With no history the stance is ``Stalled``.
    """
    if not energies:
        return TrajectorySnapshot(evidence={"n": 0})

    scores = [_score(e) for e in energies]
    n = len(scores)
    avg = sum(scores) / n
    tail = scores[-TREND_WINDOW:]
    trend = sum(tail) / len(tail)
    negatives = sum(1 for s in scores if s < 0)

    if avg >= 0.5 and trend >= avg:
        stance = TrajectoryStance.CONFIDENCE_UP
    elif avg < 0 and trend < avg:
        stance = TrajectoryStance.REGRESSING
    elif avg < 0.2 and 2 * negatives >= n:
        stance = TrajectoryStance.RESILIENCE_FRAGILE
    elif avg >= 0.2 and trend >= 0:
        stance = TrajectoryStance.BREAKTHROUGH
    else:
        stance = TrajectoryStance.STALLED

    return TrajectorySnapshot(
        stance=stance,
        evidence={"avg": round(avg, 3), "trend": round(trend, 3), "n": n},
    )
