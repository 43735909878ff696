"""Shared domain models for MindScreen."""
from .assessment import (
    Instrument,
    INSTRUMENT_ALIASES,
    SeverityLevel,
    ScoreResult,
    AssessmentRecord,
)
from .errors import (
    AssessmentError,
    UnknownInstrument,
    MalformedResponse,
    GuidanceUnavailable,
    PersistenceFailure,
)

__all__ = [
    "Instrument",
    "INSTRUMENT_ALIASES",
    "SeverityLevel",
    "ScoreResult",
    "AssessmentRecord",
    "AssessmentError",
    "UnknownInstrument",
    "MalformedResponse",
    "GuidanceUnavailable",
    "PersistenceFailure",
]
