"""Assessment Service HTTP handler.

Endpoints for submitting questionnaires and reading a student's results.
Identity and tenant are resolved upstream and forwarded as headers:

    X-Student-Id: Authenticated student
    X-Tenant-Id: Student's college
    X-User-Id, X-User-Role: Admin identity and role for form management

Responses use one envelope:
    {"success": true, "message": ..., "timestamp": ..., "data": ...}
    {"success": false, "error": {"message": ..., "code": ..., "timestamp": ...}}
"""
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from flask import Flask, jsonify, request

from mindscreen.shared.database import DuplicateError, RepositoryError, get_connection_manager
from mindscreen.shared.models import (
    GuidanceUnavailable,
    MalformedResponse,
    PersistenceFailure,
    UnknownInstrument,
)
from mindscreen.shared.utils import configure_pii_salt, hash_pii
from mindscreen.services.guidance_service import GuidanceConfig, create_guidance_provider
from .assessment_repository import AssessmentRepository
from .forms import AssessmentForm, AssessmentFormRepository
from .history import AssessmentHistoryReader
from .instruments import DEFAULT_REGISTRY
from .submission import AssessmentSubmitter

logger = logging.getLogger(__name__)

app = Flask(__name__)

pii_salt = os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars")
configure_pii_salt(pii_salt)

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Storage backend: "memory" for local development, "postgres" otherwise
store = os.getenv("ASSESSMENT_STORE", "memory").lower()
if store == "postgres":
    connection_manager = get_connection_manager()
    connection_manager.initialize()
elif store == "memory":
    connection_manager = None
else:
    raise ValueError(f"Unsupported ASSESSMENT_STORE: {store}")

repository = AssessmentRepository(connection_manager)
form_repository = AssessmentFormRepository(connection_manager)
guidance_config = GuidanceConfig.from_env()
submitter = AssessmentSubmitter(
    guidance_provider=create_guidance_provider(guidance_config),
    repository=repository,
)
history_reader = AssessmentHistoryReader(repository)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _success(message: str, data: Any = None, status: int = 200):
    return jsonify({
        "success": True,
        "message": message,
        "timestamp": _timestamp(),
        "data": data,
    }), status


def _error(message: str, code: str, status: int):
    return jsonify({
        "success": False,
        "error": {
            "message": message,
            "code": code,
            "timestamp": _timestamp(),
        },
    }), status


def _identity() -> Tuple[Optional[str], Optional[str]]:
    return request.headers.get("X-Student-Id"), request.headers.get("X-Tenant-Id")


def _parse_int_arg(name: str) -> Optional[int]:
    """Read an optional integer query parameter.

    Raises:
        ValueError: If present but not an integer
    """
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer") from None


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint for ECS/ALB."""
    return jsonify({
        "status": "healthy",
        "service": "assessment-service",
        "store": store,
        "guidance_provider": guidance_config.provider.value,
    }), 200


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check - verifies the database when one is configured."""
    if connection_manager is not None and not connection_manager.ping():
        return jsonify({"status": "not_ready", "reason": "database_unavailable"}), 503
    return jsonify({"status": "ready"}), 200


@app.route("/assessments", methods=["POST"])
async def submit_assessment():
    """Score, guide and store a completed questionnaire.

    Request Body:
        {"formType": "PHQ-9", "responses": {"q1": 2, ..., "q9": 1}}

    Response data:
        {"id", "formType", "score", "severityLevel", "guidance",
         "recommendedActions", "createdAt"}
    """
    student_id, tenant_id = _identity()
    if not student_id or not tenant_id:
        return _error("Missing student or tenant identity", "UNAUTHORIZED", 401)

    data = request.get_json(silent=True) or {}
    form_type = data.get("formType")
    responses = data.get("responses")
    if not form_type or not responses:
        logger.warning(
            "ASSESSMENT_REQUEST_INVALID",
            extra={"student_id_hash": hash_pii(student_id), "reason": "missing_fields"}
        )
        return _error("Form type and responses are required", "VALIDATION_ERROR", 400)

    try:
        record = await submitter.submit(student_id, tenant_id, form_type, responses)
    except UnknownInstrument as e:
        return _error(str(e), "UNKNOWN_ASSESSMENT_TYPE", 400)
    except MalformedResponse as e:
        return _error(str(e), "MALFORMED_RESPONSE", 400)
    except GuidanceUnavailable:
        return _error(
            "Guidance service is temporarily unavailable, please try again",
            "GUIDANCE_UNAVAILABLE",
            503,
        )
    except PersistenceFailure:
        return _error("Failed to save assessment", "PERSISTENCE_FAILURE", 500)

    return _success("Assessment submitted successfully", record.to_submission_view(), 201)


@app.route("/assessments", methods=["GET"])
def get_assessment_history():
    """List a student's assessments, newest first.

    Query Parameters:
        formType: Filter to one instrument
        limit: Page size (1-100)
        offset: Records to skip (>= 0)
    """
    student_id, tenant_id = _identity()
    if not student_id or not tenant_id:
        return _error("Missing student or tenant identity", "UNAUTHORIZED", 401)

    try:
        limit = _parse_int_arg("limit")
        offset = _parse_int_arg("offset") or 0
        history = history_reader.get_history(
            student_id,
            tenant_id,
            form_type=request.args.get("formType") or None,
            limit=limit,
            offset=offset,
        )
    except UnknownInstrument as e:
        return _error(str(e), "UNKNOWN_ASSESSMENT_TYPE", 400)
    except ValueError as e:
        return _error(str(e), "VALIDATION_ERROR", 400)
    except PersistenceFailure:
        return _error("Failed to fetch assessment history", "PERSISTENCE_FAILURE", 500)

    return _success("Assessment history retrieved successfully", history)


@app.route("/assessments/stats", methods=["GET"])
def get_assessment_stats():
    """Per-instrument counts and latest results for the student."""
    student_id, tenant_id = _identity()
    if not student_id or not tenant_id:
        return _error("Missing student or tenant identity", "UNAUTHORIZED", 401)

    try:
        stats = history_reader.get_stats(student_id, tenant_id)
    except PersistenceFailure:
        return _error("Failed to fetch assessment statistics", "PERSISTENCE_FAILURE", 500)

    return _success("Assessment statistics retrieved successfully", stats)


@app.route("/assessments/available", methods=["GET"])
def get_available_assessments():
    """Built-in instruments followed by currently active admin forms."""
    try:
        forms = form_repository.list_active()
    except RepositoryError as e:
        logger.error("ASSESSMENT_CATALOG_FAILED", extra={"error": str(e)})
        return _error("Failed to fetch available assessments", "PERSISTENCE_FAILURE", 500)

    catalog = DEFAULT_REGISTRY.catalog() + [form.to_catalog_entry() for form in forms]
    return _success("Available assessments retrieved successfully", catalog)


@app.route("/assessments/<assessment_id>", methods=["GET"])
def get_assessment_details(assessment_id: str):
    """Full detail of one of the student's assessments."""
    student_id, tenant_id = _identity()
    if not student_id or not tenant_id:
        return _error("Missing student or tenant identity", "UNAUTHORIZED", 401)

    if not _UUID_PATTERN.match(assessment_id):
        return _error("Invalid assessment ID format", "VALIDATION_ERROR", 400)

    try:
        detail = history_reader.get_assessment(assessment_id, student_id, tenant_id)
    except PersistenceFailure:
        return _error("Failed to fetch assessment details", "PERSISTENCE_FAILURE", 500)

    if detail is None:
        return _error("Assessment not found", "NOT_FOUND", 404)
    return _success("Assessment details retrieved successfully", detail)


@app.route("/admin/assessments", methods=["POST"])
def create_assessment_form():
    """Publish an admin-defined assessment form.

    Request Body:
        {"id", "name", "questions": [...], "title"?, "description"?,
         "scoringMethod"?, "maxScore"?, "validFrom"?, "validUntil"?}
    """
    if request.headers.get("X-User-Role") != "admin":
        return _error("Admin role required", "FORBIDDEN", 403)

    admin_id = request.headers.get("X-User-Id")
    data = request.get_json(silent=True) or {}

    try:
        form = form_repository.create(AssessmentForm.from_request(data, created_by=admin_id))
    except ValueError as e:
        return _error(str(e), "VALIDATION_ERROR", 400)
    except DuplicateError as e:
        return _error(str(e), "DUPLICATE", 409)
    except RepositoryError as e:
        logger.error("ASSESSMENT_FORM_CREATE_FAILED", extra={"error": str(e)})
        return _error("Failed to create assessment form", "PERSISTENCE_FAILURE", 500)

    return _success("Assessment created successfully", form.to_dict(), 201)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    port = int(os.getenv("PORT", "8002"))
    app.run(host="0.0.0.0", port=port, debug=False)
