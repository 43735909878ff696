"""Assessment domain models.

Defines the closed instrument set, the severity scale shared by every
instrument, and the immutable score and record types handed between the
scoring engine, the submission orchestrator and the persistence adapter.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .errors import UnknownInstrument


class Instrument(Enum):
    """Supported psychometric questionnaires.

    Values are the identifiers used on the wire and in storage.
    """
    PHQ9 = "PHQ-9"          # Patient Health Questionnaire (depression)
    GAD7 = "GAD-7"          # Generalized Anxiety Disorder scale
    GHQ12 = "GHQ-12"        # General Health Questionnaire
    PSS10 = "PSS-10"        # Perceived Stress Scale
    WHO5 = "WHO-5"          # WHO Well-Being Index (higher is better)
    IAT = "IAT"             # Internet Addiction Test
    PSQI = "PSQI"           # Pittsburgh Sleep Quality Index (component sum)
    BHI10 = "BHI-10"        # Brief Health Index
    DERS18 = "DERS-18"      # Difficulties in Emotion Regulation Scale
    CSSRS = "CSSRS"         # Columbia Suicide Severity Rating Scale screener

    @classmethod
    def from_identifier(cls, identifier: Union[str, "Instrument"]) -> "Instrument":
        """Resolve a wire identifier (or alias) to an Instrument.

        Exact match only: no case folding, trimming or partial matching.

        Raises:
            UnknownInstrument: If the identifier is not in the closed set
        """
        if isinstance(identifier, cls):
            return identifier
        if not isinstance(identifier, str):
            raise UnknownInstrument(identifier)

        resolved = INSTRUMENT_ALIASES.get(identifier)
        if resolved is None:
            raise UnknownInstrument(identifier)
        return resolved


INSTRUMENT_ALIASES: Mapping[str, Instrument] = {
    **{instrument.value: instrument for instrument in Instrument},
    "C-SSRS": Instrument.CSSRS,
}


class SeverityLevel(Enum):
    """Severity bands, ordered from least to most concerning.

    PHQ-9 is the only instrument using all five levels.
    """
    MINIMAL = "Minimal"
    MILD = "Mild"
    MODERATE = "Moderate"
    MODERATELY_SEVERE = "Moderately Severe"
    SEVERE = "Severe"

    @property
    def rank(self) -> int:
        """Position on the scale, 1 (Minimal) to 5 (Severe)."""
        return _SEVERITY_RANKS[self]


_SEVERITY_RANKS: Dict[SeverityLevel, int] = {
    SeverityLevel.MINIMAL: 1,
    SeverityLevel.MILD: 2,
    SeverityLevel.MODERATE: 3,
    SeverityLevel.MODERATELY_SEVERE: 4,
    SeverityLevel.SEVERE: 5,
}


@dataclass(frozen=True)
class ScoreResult:
    """Numeric score and severity band for one response set."""
    score: int
    severity: SeverityLevel

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "severity": self.severity.value}


@dataclass(frozen=True)
class AssessmentRecord:
    """A scored, guided assessment as handed to and returned by storage.

    The orchestrator builds it without id/created_at; the repository
    returns a copy with both assigned. Never mutated after construction.
    """
    student_id: str
    tenant_id: str
    instrument: Instrument
    responses: Dict[str, Any]
    score: int
    severity: SeverityLevel
    guidance: str
    recommended_actions: Tuple[str, ...] = field(default_factory=tuple)
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.recommended_actions, tuple):
            object.__setattr__(self, "recommended_actions", tuple(self.recommended_actions))

    def to_submission_view(self) -> Dict[str, Any]:
        """Caller-facing shape returned after a submission."""
        return {
            "id": self.id,
            "formType": self.instrument.value,
            "score": self.score,
            "severityLevel": self.severity.value,
            "guidance": self.guidance,
            "recommendedActions": list(self.recommended_actions),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def to_history_view(self) -> Dict[str, Any]:
        """Caller-facing shape for history listings.

        Field names intentionally differ from the submission view.
        """
        return {
            "id": self.id,
            "assessmentName": self.instrument.value,
            "date": self.created_at.date().isoformat() if self.created_at else None,
            "time": self.created_at.strftime("%H:%M:%S") if self.created_at else None,
            "score": self.score,
            "severity": self.severity.value,
            "responses": dict(self.responses),
        }

    def to_detail_view(self) -> Dict[str, Any]:
        """History view plus the stored guidance."""
        view = self.to_history_view()
        view["guidance"] = self.guidance
        view["recommendedActions"] = list(self.recommended_actions)
        return view
