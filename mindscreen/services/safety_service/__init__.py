"""Safety Service: crisis keyword detection for free text.

Every chat message is checked before it reaches the conversational model.
A match is answered locally with a static supportive reply and published
as a crisis event for counselor follow-up.

Components:
- keywords.py: Versioned crisis keyword sets
- detector.py: Pure keyword matcher
- config.py: Environment configuration
- crisis_publisher.py: Kinesis event publishing
- handler.py: Flask HTTP endpoints (/health, /ready, /scan)

Usage:
    from mindscreen.services.safety_service import is_crisis_message
    if is_crisis_message(text):
        ...
"""

from .keywords import KeywordSet, DEFAULT_CRISIS_KEYWORDS
from .detector import is_crisis_message, matched_keywords
from .config import SafetyConfig
from .crisis_publisher import CrisisEventPublisher, SafetyCrisisEvent

__all__ = [
    "KeywordSet",
    "DEFAULT_CRISIS_KEYWORDS",
    "is_crisis_message",
    "matched_keywords",
    "SafetyConfig",
    "CrisisEventPublisher",
    "SafetyCrisisEvent",
]
