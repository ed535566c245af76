"""Keyword-based tone and energy analysis of free text."""

from dataclasses import dataclass

DEFAULT_TONE = "Clear"
DEFAULT_ENERGY = 50

CRISIS_TONE = "Crisis"

# Tones that count as emotional strain for the passive crisis monitor.
STRAIN_TONES = frozenset({"Drained", "Anxious", "Overwhelmed"})

# Ordered: a later group overrides an earlier one when both match.
_KEYWORD_GROUPS: tuple[tuple[str, int, tuple[str, ...]], ...] = (
    ("Anxious", 30, ("stuck", "hard", "uncertain", "anxious")),
    ("Motivated", 80, ("great", "good", "happy", "excited")),
    ("Drained", 10, ("sleep", "tired", "drained")),
    ("Flowing", 70, ("flow", "easy", "hope")),
)

# Always checked last and always wins.
_CRISIS_KEYWORDS: tuple[str, ...] = (
    "crisis",
    "cannot cope",
    "overwhelmed",
    "emergency",
    "self-harm",
    "i want to die",
    "end it all",
)


@dataclass(frozen=True)
class ToneReading:
    """Coarse emotional tone and energy level (0-100) of a message."""

    tone: str = DEFAULT_TONE
    energy: int = DEFAULT_ENERGY

    @property
    def is_crisis(self) -> bool:
        return self.tone == CRISIS_TONE


def analyze_tone(text: object) -> ToneReading:
    """Map free text to a tone and energy level.

    Never raises. Unmatched text yields ``Clear``/50.
    """
    t = str(text).lower() if text is not None else ""
    tone, energy = DEFAULT_TONE, DEFAULT_ENERGY

    for group_tone, group_energy, keywords in _KEYWORD_GROUPS:
        if any(k in t for k in keywords):
            tone, energy = group_tone, group_energy

    if any(k in t for k in _CRISIS_KEYWORDS):
        tone, energy = CRISIS_TONE, 0

    return ToneReading(tone=tone, energy=energy)
