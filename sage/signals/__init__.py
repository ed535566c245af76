"""Emotional and contextual signal extraction (EIC)."""

from sage.signals.tone import STRAIN_TONES, ToneReading, analyze_tone
from sage.signals.topics import extract_topic_tag

__all__ = ["STRAIN_TONES", "ToneReading", "analyze_tone", "extract_topic_tag"]
