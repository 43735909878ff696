"""Persistence adapter for assessment records.

Stores AssessmentRecord rows in the `assessments` table. The recommended
action sequence is a tuple everywhere in the domain; only this module knows
it is stored as a single "||"-joined text column.

Without a ConnectionManager the repository keeps records in process memory
with the same ordering and tenant-isolation semantics (development/tests).
"""
import json
import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from psycopg2.extras import Json

from mindscreen.shared.database import (
    BaseRepository,
    ConnectionManager,
    RepositoryError,
)
from mindscreen.shared.models import AssessmentRecord, Instrument, SeverityLevel

logger = logging.getLogger(__name__)

ACTION_DELIMITER = "||"
# Any pipe inside an action could merge with the delimiter on decode
_FORBIDDEN_IN_ACTION = "|"


def encode_actions(actions: Sequence[str]) -> Optional[str]:
    """Encode an ordered action sequence for the text column.

    An empty sequence is stored as NULL so that it decodes back to an
    empty tuple rather than a single empty string.

    Raises:
        RepositoryError: If an action is not a string or contains "|"
    """
    actions = tuple(actions)
    if not actions:
        return None

    for action in actions:
        if not isinstance(action, str):
            raise RepositoryError(f"Recommended action must be a string, got {action!r}")
        if _FORBIDDEN_IN_ACTION in action:
            raise RepositoryError("Recommended action may not contain '|'")

    return ACTION_DELIMITER.join(actions)


def decode_actions(stored: Optional[str]) -> Tuple[str, ...]:
    """Decode the text column back to the original action sequence."""
    if stored is None:
        return ()
    return tuple(stored.split(ACTION_DELIMITER))


class AssessmentRepository(BaseRepository[AssessmentRecord]):
    """Insert and tenant-scoped reads of assessment records."""

    columns = (
        "id",
        "student_id",
        "college_id",
        "form_type",
        "responses",
        "score",
        "severity_level",
        "guidance",
        "recommended_actions",
        "created_at",
    )

    def __init__(
        self,
        connection_manager: Optional[ConnectionManager] = None,
        table_name: str = "assessments",
    ):
        """Initialize repository.

        Args:
            connection_manager: PostgreSQL connection manager; None keeps
                records in memory
            table_name: Name of the assessments table
        """
        super().__init__(connection_manager, table_name)
        self._memory_store: List[AssessmentRecord] = []
        self._memory_lock = threading.Lock()

        logger.info(
            "ASSESSMENT_REPOSITORY_INITIALIZED",
            extra={"backend": "postgresql" if connection_manager else "memory"}
        )

    def _row_to_entity(self, row: tuple) -> AssessmentRecord:
        responses = row[4]
        if isinstance(responses, str):
            responses = json.loads(responses)

        return AssessmentRecord(
            id=str(row[0]),
            student_id=row[1],
            tenant_id=row[2],
            instrument=Instrument.from_identifier(row[3]),
            responses=responses,
            score=row[5],
            severity=SeverityLevel(row[6]),
            guidance=row[7],
            recommended_actions=decode_actions(row[8]),
            created_at=row[9],
        )

    def _entity_to_params(self, entity: AssessmentRecord) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "student_id": entity.student_id,
            "college_id": entity.tenant_id,
            "form_type": entity.instrument.value,
            "responses": Json(dict(entity.responses)),
            "score": entity.score,
            "severity_level": entity.severity.value,
            "guidance": entity.guidance,
            "recommended_actions": encode_actions(entity.recommended_actions),
            "created_at": entity.created_at,
        }

    def insert(self, entity: AssessmentRecord) -> AssessmentRecord:
        """Store a new record under a freshly generated id.

        Returns:
            The record as stored, with id and created_at assigned

        Raises:
            RepositoryError: If the record cannot be encoded or written
        """
        record = replace(
            entity,
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            responses=dict(entity.responses),
        )

        if self.connection_manager is not None:
            return super().insert(record)

        # Same encoding rules as the SQL path
        encode_actions(record.recommended_actions)
        with self._memory_lock:
            self._memory_store.append(record)

        logger.debug(
            "ASSESSMENT_STORED_MEMORY",
            extra={"assessment_id": record.id, "form_type": record.instrument.value}
        )
        return record

    def find_for_student(
        self,
        assessment_id: str,
        student_id: str,
        tenant_id: str,
    ) -> Optional[AssessmentRecord]:
        """Point lookup scoped to the owning student and tenant."""
        if self.connection_manager is not None:
            return self.find_one({
                "id": assessment_id,
                "student_id": student_id,
                "college_id": tenant_id,
            })

        with self._memory_lock:
            for record in self._memory_store:
                if (
                    record.id == assessment_id
                    and record.student_id == student_id
                    and record.tenant_id == tenant_id
                ):
                    return record
        return None

    def history(
        self,
        student_id: str,
        tenant_id: str,
        instrument: Optional[Instrument] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[AssessmentRecord]:
        """A student's records within a tenant, newest first."""
        if self.connection_manager is not None:
            filters: Dict[str, Any] = {"student_id": student_id, "college_id": tenant_id}
            if instrument is not None:
                filters["form_type"] = instrument.value
            return self.find_where(filters, limit=limit, offset=offset)

        with self._memory_lock:
            # Newest insert first among equal timestamps
            matching = [
                record for record in reversed(self._memory_store)
                if record.student_id == student_id
                and record.tenant_id == tenant_id
                and (instrument is None or record.instrument is instrument)
            ]
        matching.sort(key=lambda record: record.created_at, reverse=True)

        end = None if limit is None else offset + limit
        return matching[offset:end]
