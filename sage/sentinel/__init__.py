"""Sentinel: hard-coded policy enforcement and crisis detection."""

from sage.sentinel.agent import CrisisEscalation, Sentinel, assess_signals
from sage.sentinel.monitor import CrisisMonitor
from sage.sentinel.policies import RULES, PolicyFlag, PolicyId, PolicyRule, Severity, match_rule

__all__ = [
    "RULES",
    "CrisisEscalation",
    "CrisisMonitor",
    "PolicyFlag",
    "PolicyId",
    "PolicyRule",
    "Sentinel",
    "Severity",
    "assess_signals",
    "match_rule",
]
