"""Adaptive Continuity Framework: context preparation, dignity checkpoints and consent."""

from sage.acf.checkpoints import contains_pii, detect_pii, run_checkpoints
from sage.acf.consent import ConsentEngine
from sage.acf.guidance import extract_guidance
from sage.acf.models import (
    MEMORY_SCOPE,
    CheckpointResult,
    ConsentRequest,
    DignityFinding,
    DignitySeverity,
    FinalizeResult,
    Guidance,
    Preparation,
    TrajectorySnapshot,
    TrajectoryStance,
    UserSignals,
)
from sage.acf.runtime import ContinuityEngine
from sage.acf.trajectory import compute_trajectory

__all__ = [
    "MEMORY_SCOPE",
    "CheckpointResult",
    "ConsentEngine",
    "ConsentRequest",
    "ContinuityEngine",
    "DignityFinding",
    "DignitySeverity",
    "FinalizeResult",
    "Guidance",
    "Preparation",
    "TrajectorySnapshot",
    "TrajectoryStance",
    "UserSignals",
    "compute_trajectory",
    "contains_pii",
    "detect_pii",
    "extract_guidance",
    "run_checkpoints",
]
