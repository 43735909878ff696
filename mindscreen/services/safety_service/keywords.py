"""Crisis keyword data.

Phrases are matched case-insensitively as substrings of the message, so
root words ("suicide") also cover their longer forms. The list is kept
separate from the matcher so a clinically reviewed set can be loaded from
a JSON file without code changes.

JSON format:
    {"version": "2026.01.16", "phrases": ["kill myself", ...]}
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, Union


@dataclass(frozen=True)
class KeywordSet:
    """Versioned, immutable set of lowercase crisis phrases."""
    version: str
    phrases: FrozenSet[str]

    @classmethod
    def build(cls, version: str, phrases: Iterable[str]) -> "KeywordSet":
        normalized = frozenset(p.strip().lower() for p in phrases if p and p.strip())
        if not normalized:
            raise ValueError("Keyword set must contain at least one phrase")
        return cls(version=version, phrases=normalized)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "KeywordSet":
        """Load a keyword set from a JSON file.

        Raises:
            ValueError: If the file is not a valid keyword document
            OSError: If the file cannot be read
        """
        with open(path, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Keyword file {path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Keyword file {path} must contain a JSON object")

        phrases = data.get("phrases")
        if not isinstance(phrases, list) or not all(isinstance(p, str) for p in phrases):
            raise ValueError(f"Keyword file {path} must list phrases as strings")

        return cls.build(str(data.get("version", "unversioned")), phrases)

    def __len__(self) -> int:
        return len(self.phrases)


DEFAULT_KEYWORD_VERSION = "2026.01.16"

DEFAULT_CRISIS_KEYWORDS = KeywordSet.build(DEFAULT_KEYWORD_VERSION, [
    # Root words
    "suicide",
    "suicidal",
    "suicidality",

    # Direct intent
    "kill myself",
    "killing myself",
    "want to kill myself",
    "kms",
    "kys",

    # Wanting to die
    "i want to die",
    "i wanna die",
    "i wanna just die",
    "want to die",
    "want to just die",
    "wish i was dead",
    "wish i were dead",
    "better off dead",
    "dying inside",
    "i'm done with life",
    "done with life",
    "life is pointless",
    "life is meaningless",

    # Not wanting to live
    "i dont want to live",
    "i don't want to live",
    "i don't want to exist",
    "don't want to be alive",
    "i shouldn't exist",
    "i want to disappear",
    "i want to vanish",
    "i want everything to end",

    # Ending it all
    "end my life",
    "ending my life",
    "end it all",
    "thinking of ending everything",
    "end everything",
    "ending everything",

    # Self-harm
    "self harm",
    "self-harm",
    "self harming",
    "self-harming",
    "hurt myself",
    "hurting myself",
    "cut myself",
    "cutting myself",
    "cutting",
    "slit my wrists",
    "slitting my wrists",

    # Methods
    "jump off a building",
    "jump off a bridge",
    "hang myself",
    "hanging myself",
    "crash my car intentionally",
    "drive into traffic",
])
