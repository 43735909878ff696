"""Admin-defined assessment forms.

Dynamic forms are published by administrators and listed next to the
built-in instruments while active. They are catalog entries only: the
scoring dispatcher never scores them.
"""
import json
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from psycopg2.extras import Json

from mindscreen.shared.database import (
    BaseRepository,
    ConnectionManager,
    DuplicateError,
    RepositoryError,
)
from mindscreen.shared.models import INSTRUMENT_ALIASES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssessmentForm:
    """An admin-created questionnaire definition."""
    id: str
    name: str
    questions: List[Dict[str, Any]]
    title: Optional[str] = None
    description: Optional[str] = None
    scoring_method: str = "sum"
    max_score: Optional[int] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_request(cls, data: Dict[str, Any], created_by: str) -> "AssessmentForm":
        """Build a form from an admin request body.

        Raises:
            ValueError: If required fields are missing or the id is reserved
        """
        if not data.get("id") or not data.get("name") or not data.get("questions"):
            raise ValueError("ID, Name, and Questions are required")
        if not isinstance(data["questions"], list):
            raise ValueError("Questions must be a list")
        if data["id"] in INSTRUMENT_ALIASES:
            raise ValueError(f"Form ID {data['id']} is reserved for a built-in assessment")

        return cls(
            id=data["id"],
            name=data["name"],
            questions=data["questions"],
            title=data.get("title"),
            description=data.get("description"),
            scoring_method=data.get("scoringMethod") or "sum",
            max_score=data.get("maxScore"),
            valid_from=_parse_timestamp(data.get("validFrom")),
            valid_until=_parse_timestamp(data.get("validUntil")),
            created_by=created_by,
        )

    def is_available(self, now: datetime) -> bool:
        """Active and inside its validity window."""
        if not self.is_active:
            return False
        if self.valid_from is not None and self.valid_from > now:
            return False
        return self.valid_until is None or self.valid_until >= now

    def to_catalog_entry(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "duration": "5-10 minutes",
            "questions": len(self.questions),
            "category": "Dynamic",
            "isDynamic": True,
            "validUntil": self.valid_until.isoformat() if self.valid_until else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "questions": self.questions,
            "scoringMethod": self.scoring_method,
            "maxScore": self.max_score,
            "validFrom": self.valid_from.isoformat() if self.valid_from else None,
            "validUntil": self.valid_until.isoformat() if self.valid_until else None,
            "isActive": self.is_active,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, TypeError, ValueError):
        raise ValueError(f"Invalid timestamp: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AssessmentFormRepository(BaseRepository[AssessmentForm]):
    """Storage for admin-defined forms (PostgreSQL or in-memory)."""

    columns = (
        "id",
        "name",
        "title",
        "description",
        "questions",
        "scoring_method",
        "max_score",
        "valid_from",
        "valid_until",
        "is_active",
        "created_by",
        "created_at",
    )

    def __init__(
        self,
        connection_manager: Optional[ConnectionManager] = None,
        table_name: str = "assessment_forms",
    ):
        super().__init__(connection_manager, table_name)
        self._memory_store: Dict[str, AssessmentForm] = {}
        self._memory_lock = threading.Lock()

    def _row_to_entity(self, row: tuple) -> AssessmentForm:
        questions = row[4]
        if isinstance(questions, str):
            questions = json.loads(questions)
        return AssessmentForm(
            id=row[0],
            name=row[1],
            title=row[2],
            description=row[3],
            questions=questions,
            scoring_method=row[5],
            max_score=row[6],
            valid_from=row[7],
            valid_until=row[8],
            is_active=row[9],
            created_by=row[10],
            created_at=row[11],
        )

    def _entity_to_params(self, entity: AssessmentForm) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "title": entity.title,
            "description": entity.description,
            "questions": Json(entity.questions),
            "scoring_method": entity.scoring_method,
            "max_score": entity.max_score,
            "valid_from": entity.valid_from,
            "valid_until": entity.valid_until,
            "is_active": entity.is_active,
            "created_by": entity.created_by,
            "created_at": entity.created_at,
        }

    def create(self, form: AssessmentForm) -> AssessmentForm:
        """Store a new form.

        Raises:
            DuplicateError: If a form with the same id exists
            RepositoryError: On storage failure
        """
        now = datetime.now(timezone.utc)
        form = replace(form, created_at=now, valid_from=form.valid_from or now)

        if self.connection_manager is not None:
            stored = self.insert(form)
        else:
            with self._memory_lock:
                if form.id in self._memory_store:
                    raise DuplicateError(f"Form ID {form.id} already exists")
                self._memory_store[form.id] = form
            stored = form

        logger.info(
            "ASSESSMENT_FORM_CREATED",
            extra={"form_id": stored.id, "question_count": len(stored.questions)}
        )
        return stored

    def list_active(self, now: Optional[datetime] = None) -> List[AssessmentForm]:
        """Forms that are active and currently within their validity window."""
        now = now or datetime.now(timezone.utc)

        if self.connection_manager is None:
            with self._memory_lock:
                forms = list(self._memory_store.values())
            return [form for form in forms if form.is_available(now)]

        query = (
            self._select_clause()
            + " WHERE is_active = TRUE AND valid_from <= %s"
            + " AND (valid_until IS NULL OR valid_until >= %s)"
        )
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, [now, now])
                    rows = cur.fetchall()
        except Exception as e:
            logger.error(
                "ASSESSMENT_FORM_QUERY_FAILED",
                extra={"error": str(e)}
            )
            raise RepositoryError(f"Failed to list assessment forms: {e}") from e

        return [self._row_to_entity(row) for row in rows]
