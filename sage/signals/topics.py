"""Simple keyword topic extraction."""

DEFAULT_TOPIC = "General_Reflection"

_TOPICS = ("career", "relationship", "health", "growth", "exploration")


def extract_topic_tag(text: str) -> str:
    """Return a topic tag like ``Career_Change`` for the first topic keyword found."""
    lower = (text or "").lower()
    for topic in _TOPICS:
        if topic in lower:
            return f"{topic.capitalize()}_Change"
    return DEFAULT_TOPIC
