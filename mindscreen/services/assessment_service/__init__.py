"""Assessment Service: questionnaire scoring, submission and history.

Components:
- instruments.py: Immutable per-instrument configuration and catalog
- scoring.py: Pure scorers and the calculate_score dispatcher
- submission.py: score -> guidance -> persist orchestrator
- history.py: History, detail and stats readers
- assessment_repository.py: Persistence adapter for assessment records
- forms.py: Admin-defined assessment forms (catalog only)
- handler.py: Flask HTTP endpoints

Usage:
    from mindscreen.services.assessment_service import calculate_score
    result = calculate_score("PHQ-9", {"q1": 2, ..., "q9": 2})
    result.score, result.severity
"""

from .instruments import (
    DEFAULT_REGISTRY,
    InstrumentConfig,
    InstrumentRegistry,
    ScoringRule,
    build_default_registry,
)
from .scoring import SCORERS, calculate_score
from .assessment_repository import AssessmentRepository, decode_actions, encode_actions
from .forms import AssessmentForm, AssessmentFormRepository
from .submission import AssessmentSubmitter
from .history import AssessmentHistoryReader

__all__ = [
    "DEFAULT_REGISTRY",
    "InstrumentConfig",
    "InstrumentRegistry",
    "ScoringRule",
    "build_default_registry",
    "SCORERS",
    "calculate_score",
    "AssessmentRepository",
    "decode_actions",
    "encode_actions",
    "AssessmentForm",
    "AssessmentFormRepository",
    "AssessmentSubmitter",
    "AssessmentHistoryReader",
]
