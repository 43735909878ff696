"""Error kinds surfaced by the assessment core.

Caller errors (UnknownInstrument, MalformedResponse) are raised before any
external call is made. Service errors (GuidanceUnavailable,
PersistenceFailure) mean the submission as a whole failed, even when a
score was computed.
"""
from typing import Optional


class AssessmentError(Exception):
    """Base exception for assessment scoring and submission errors."""

    retryable: bool = False


class UnknownInstrument(AssessmentError):
    """Instrument identifier is outside the supported closed set."""

    def __init__(self, identifier: object):
        self.identifier = identifier
        super().__init__(f"Unknown assessment type: {identifier!r}")


class MalformedResponse(AssessmentError):
    """A required item is missing or cannot be read as the expected value."""

    def __init__(self, instrument: str, message: str, item_id: Optional[str] = None):
        self.instrument = instrument
        self.item_id = item_id
        prefix = f"{instrument} item {item_id}" if item_id else instrument
        super().__init__(f"{prefix}: {message}")


class GuidanceUnavailable(AssessmentError):
    """Guidance collaborator failed; safe to retry the submission."""

    retryable = True


class PersistenceFailure(AssessmentError):
    """Assessment record could not be written or read."""
