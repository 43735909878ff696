"""Read-side views over stored assessments: history, detail and stats."""
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from mindscreen.shared.database import RepositoryError
from mindscreen.shared.models import Instrument, PersistenceFailure
from .assessment_repository import AssessmentRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10      # Applied when only an offset is given
RECENT_ASSESSMENT_COUNT = 5


class AssessmentHistoryReader:
    """Tenant-scoped queries over a student's assessment records."""

    def __init__(self, repository: AssessmentRepository):
        self.repository = repository

    def _read(self, operation: str, query: Callable[[], T]) -> T:
        try:
            return query()
        except RepositoryError as e:
            logger.error(
                "ASSESSMENT_READ_FAILED",
                extra={"operation": operation, "error": str(e)}
            )
            raise PersistenceFailure(f"Failed to read assessments: {e}") from e

    def get_history(
        self,
        student_id: str,
        tenant_id: str,
        form_type: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """History entries, newest first.

        Raises:
            ValueError: If limit is outside 1-100 or offset is negative
            UnknownInstrument: If form_type is not a supported instrument
        """
        if limit is not None and not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValueError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValueError("Offset must be non-negative")

        instrument = Instrument.from_identifier(form_type) if form_type else None
        if offset and limit is None:
            limit = DEFAULT_PAGE_SIZE

        records = self._read(
            "history",
            lambda: self.repository.history(
                student_id, tenant_id, instrument=instrument, limit=limit, offset=offset
            ),
        )
        return [record.to_history_view() for record in records]

    def get_assessment(
        self,
        assessment_id: str,
        student_id: str,
        tenant_id: str,
    ) -> Optional[Dict[str, Any]]:
        """Full detail of one assessment, or None if not owned/not found."""
        record = self._read(
            "detail",
            lambda: self.repository.find_for_student(assessment_id, student_id, tenant_id),
        )
        return record.to_detail_view() if record else None

    def get_stats(self, student_id: str, tenant_id: str) -> Dict[str, Any]:
        """Per-instrument counts and latest results, plus recent activity."""
        records = self._read(
            "stats",
            lambda: self.repository.history(student_id, tenant_id),
        )

        by_type: Dict[str, Dict[str, Any]] = {}
        for record in records:
            stats = by_type.get(record.instrument.value)
            if stats is None:
                # Records arrive newest first: the first one seen is the latest
                stats = by_type[record.instrument.value] = {
                    "count": 0,
                    "latestScore": record.score,
                    "latestSeverity": record.severity.value,
                    "latestDate": record.created_at.isoformat() if record.created_at else None,
                }
            stats["count"] += 1

        return {
            "totalAssessments": len(records),
            "assessmentsByType": by_type,
            "recentAssessments": [
                {
                    "id": record.id,
                    "type": record.instrument.value,
                    "score": record.score,
                    "severity": record.severity.value,
                    "date": record.created_at.date().isoformat() if record.created_at else None,
                }
                for record in records[:RECENT_ASSESSMENT_COUNT]
            ],
        }
