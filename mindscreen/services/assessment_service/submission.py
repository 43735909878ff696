"""Assessment submission orchestrator.

score -> guidance -> persist -> normalized record.

Scoring runs first and any scoring error aborts before an external call
is made. The ScoreResult computed once here is the one passed to the
guidance provider and the one persisted. Guidance is requested exactly once
per submission; retries belong to the provider. Every submission creates a
new record.
"""
import asyncio
import logging
from typing import Any, Mapping, Optional, Union

from mindscreen.shared.database import RepositoryError
from mindscreen.shared.models import (
    AssessmentError,
    AssessmentRecord,
    GuidanceUnavailable,
    Instrument,
    PersistenceFailure,
)
from mindscreen.shared.utils import hash_pii
from mindscreen.services.guidance_service import GuidanceProvider, GuidanceResult
from .assessment_repository import AssessmentRepository
from .instruments import DEFAULT_REGISTRY, InstrumentRegistry
from .scoring import calculate_score

logger = logging.getLogger(__name__)


class AssessmentSubmitter:
    """Composes scoring, guidance and persistence for one submission."""

    def __init__(
        self,
        guidance_provider: GuidanceProvider,
        repository: AssessmentRepository,
        registry: Optional[InstrumentRegistry] = None,
    ):
        """Initialize submitter with its collaborators.

        Args:
            guidance_provider: External guidance collaborator
            repository: Assessment persistence adapter
            registry: Instrument configuration (defaults to built-ins)
        """
        self.guidance_provider = guidance_provider
        self.repository = repository
        self.registry = DEFAULT_REGISTRY if registry is None else registry

    async def submit(
        self,
        student_id: str,
        tenant_id: str,
        instrument: Union[str, Instrument],
        responses: Mapping[str, Any],
    ) -> AssessmentRecord:
        """Score, guide and store an assessment.

        Args:
            student_id: Submitting student
            tenant_id: Student's college (tenant scope)
            instrument: Instrument identifier or alias
            responses: Question id -> answer token

        Returns:
            The persisted AssessmentRecord (id and created_at assigned)

        Raises:
            UnknownInstrument: Identifier outside the supported set
            MalformedResponse: Incomplete or invalid response set
            GuidanceUnavailable: Guidance collaborator failed
            PersistenceFailure: Record could not be stored

        Logs:
            - ASSESSMENT_SUBMISSION_STARTED
            - ASSESSMENT_SCORING_REJECTED: If scoring raised
            - ASSESSMENT_SCORED
            - ASSESSMENT_PERSISTED
        """
        student_id_hash = hash_pii(student_id)
        tenant_id_hash = hash_pii(tenant_id)

        logger.info(
            "ASSESSMENT_SUBMISSION_STARTED",
            extra={
                "student_id_hash": student_id_hash,
                "tenant_id_hash": tenant_id_hash,
                "form_type": str(getattr(instrument, "value", instrument)),
                "response_count": len(responses) if isinstance(responses, Mapping) else None,
            }
        )

        try:
            config = self.registry.get(instrument)
            result = calculate_score(config.instrument, responses, registry=self.registry)
        except AssessmentError as e:
            logger.warning(
                "ASSESSMENT_SCORING_REJECTED",
                extra={
                    "student_id_hash": student_id_hash,
                    "error_type": type(e).__name__,
                    "error": str(e),
                }
            )
            raise

        logger.info(
            "ASSESSMENT_SCORED",
            extra={
                "student_id_hash": student_id_hash,
                "form_type": config.instrument.value,
                "score": result.score,
                "severity": result.severity.value,
            }
        )

        guidance = await self._request_guidance(config.instrument, responses, result, student_id_hash)

        record = AssessmentRecord(
            student_id=student_id,
            tenant_id=tenant_id,
            instrument=config.instrument,
            responses=dict(responses),
            score=result.score,
            severity=result.severity,
            guidance=guidance.guidance,
            recommended_actions=guidance.recommended_actions,
        )

        try:
            stored = await asyncio.to_thread(self.repository.insert, record)
        except RepositoryError as e:
            logger.error(
                "ASSESSMENT_PERSIST_FAILED",
                extra={
                    "student_id_hash": student_id_hash,
                    "form_type": config.instrument.value,
                    "error": str(e),
                }
            )
            raise PersistenceFailure(f"Failed to store assessment: {e}") from e

        logger.info(
            "ASSESSMENT_PERSISTED",
            extra={
                "assessment_id": stored.id,
                "student_id_hash": student_id_hash,
                "form_type": stored.instrument.value,
                "severity": stored.severity.value,
            }
        )
        return stored

    async def _request_guidance(self, instrument, responses, result, student_id_hash) -> GuidanceResult:
        try:
            return await self.guidance_provider.get_guidance(
                instrument, responses, result.score, result.severity
            )
        except GuidanceUnavailable:
            logger.error(
                "ASSESSMENT_GUIDANCE_UNAVAILABLE",
                extra={"student_id_hash": student_id_hash, "form_type": instrument.value}
            )
            raise
        except Exception as e:
            logger.error(
                "ASSESSMENT_GUIDANCE_UNAVAILABLE",
                extra={
                    "student_id_hash": student_id_hash,
                    "form_type": instrument.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            raise GuidanceUnavailable(f"Guidance collaborator failed: {e}") from e
