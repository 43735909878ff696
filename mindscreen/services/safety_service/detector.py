"""Crisis keyword detector.

Escalation gate for free text: a message that contains any crisis phrase
is answered locally and never forwarded to the conversational model.
The check is a pure function of (text, keyword set). It never raises,
never logs and has no side effects; callers own logging and escalation.
"""
from typing import List, Optional

from .keywords import DEFAULT_CRISIS_KEYWORDS, KeywordSet


def is_crisis_message(text: object, keywords: Optional[KeywordSet] = None) -> bool:
    """Return True if text contains any crisis phrase (case-insensitive).

    Non-string and empty input is not a crisis signal.
    """
    if not isinstance(text, str) or not text:
        return False
    lowered = text.lower()
    phrases = (DEFAULT_CRISIS_KEYWORDS if keywords is None else keywords).phrases
    return any(phrase in lowered for phrase in phrases)


def matched_keywords(text: object, keywords: Optional[KeywordSet] = None) -> List[str]:
    """Crisis phrases found in text, sorted for stable output."""
    if not isinstance(text, str) or not text:
        return []
    lowered = text.lower()
    phrases = (DEFAULT_CRISIS_KEYWORDS if keywords is None else keywords).phrases
    return sorted(phrase for phrase in phrases if phrase in lowered)
