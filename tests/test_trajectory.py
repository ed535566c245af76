"""Tests for trajectory classification."""

import pytest

from sage.acf import TrajectoryStance, compute_trajectory


@pytest.mark.parametrize(
    ("energies", "stance"),
    [
        ([], TrajectoryStance.STALLED),
        ([80, 80, 80], TrajectoryStance.CONFIDENCE_UP),
        ([30, 30, 30, 10], TrajectoryStance.REGRESSING),
        ([10, 10, 10], TrajectoryStance.RESILIENCE_FRAGILE),
        ([70, 70, 70], TrajectoryStance.BREAKTHROUGH),
        ([50, 50], TrajectoryStance.STALLED),
    ],
)
def test_stances(energies: list[int], stance: TrajectoryStance) -> None:
    assert compute_trajectory(energies).stance is stance


def test_evidence() -> None:
    snap = compute_trajectory([100, 0])
    assert snap.evidence == {"avg": 0.0, "trend": 0.0, "n": 2}


def test_fragile_flag() -> None:
    assert compute_trajectory([10, 30, 10]).is_fragile
    assert not compute_trajectory([80]).is_fragile
