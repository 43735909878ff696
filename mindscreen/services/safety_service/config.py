"""Safety Service configuration."""
import os
from dataclasses import dataclass
from typing import Optional

from .keywords import DEFAULT_CRISIS_KEYWORDS, KeywordSet


@dataclass(frozen=True)
class SafetyConfig:
    """Configuration for crisis detection and escalation."""

    # Reviewed keyword file; built-in set when unset
    keywords_file: Optional[str] = None

    # Disable for local development
    crisis_publishing_enabled: bool = True
    kinesis_stream_name: str = "mindscreen-crisis-events"
    aws_region: str = "us-east-1"

    @classmethod
    def from_env(cls) -> "SafetyConfig":
        """Create configuration from environment variables."""
        return cls(
            keywords_file=os.getenv("CRISIS_KEYWORDS_FILE") or None,
            crisis_publishing_enabled=os.getenv("CRISIS_PUBLISHING_ENABLED", "true").lower() == "true",
            kinesis_stream_name=os.getenv("KINESIS_STREAM_NAME", "mindscreen-crisis-events"),
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
        )

    def load_keywords(self) -> KeywordSet:
        """Keyword set to match against.

        Raises:
            ValueError: If the configured keyword file is invalid
            OSError: If the configured keyword file cannot be read
        """
        if self.keywords_file:
            return KeywordSet.from_file(self.keywords_file)
        return DEFAULT_CRISIS_KEYWORDS
