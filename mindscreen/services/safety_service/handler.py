"""Safety Service HTTP handler.

Every chat message passes through /scan before it reaches the
conversational model. A crisis message is answered here with a static
supportive reply; the model never sees it.

No message text is logged, only its length, a fingerprint and the
matched phrases.
"""
import logging
import os

from flask import Flask, jsonify, request

from mindscreen.shared.utils import configure_pii_salt, hash_pii, hash_text_for_audit
from .config import SafetyConfig
from .crisis_publisher import CrisisEventPublisher
from .detector import is_crisis_message, matched_keywords

logger = logging.getLogger(__name__)

app = Flask(__name__)

pii_salt = os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars")
configure_pii_salt(pii_salt)

config = SafetyConfig.from_env()
keywords = config.load_keywords()

crisis_publisher = CrisisEventPublisher(
    stream_name=config.kinesis_stream_name,
    enabled=config.crisis_publishing_enabled,
    region=config.aws_region,
)

CRISIS_REPLY = (
    "I'm really glad you reached out and shared this with me. "
    "Your feelings are important and you do not have to face this alone.\n\n"
    "I'm just an AI and I can't provide emergency help, but it's very important to talk to someone who can. "
    "If you are in immediate danger, please contact your local emergency number or a crisis helpline in your area. "
    "You can also reach out to a trusted friend, family member, or a counsellor on your campus.\n\n"
    "If you'd like, we can also talk a bit more about what you're feeling and small steps to stay safe right now."
)


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint for ECS/ALB."""
    return jsonify({
        "status": "healthy",
        "service": "safety-service",
        "keyword_version": keywords.version,
    }), 200


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check - verifies keywords are loaded."""
    if not keywords:
        return jsonify({"status": "not_ready", "reason": "keywords_not_loaded"}), 503
    return jsonify({"status": "ready"}), 200


@app.route("/scan", methods=["POST"])
def scan_message():
    """Check a chat message for crisis language.

    Headers:
        X-Student-Id: Authenticated student
        X-Tenant-Id: Student's college (optional)

    Request Body:
        {"message": "Student message text", "conversationId": "conv_123"}

    Response (crisis):
        {"isCrisis": true, "reply": "...", "conversationId": ...,
         "isCrisisHandledLocally": true}

    Response (no crisis):
        {"isCrisis": false, "conversationId": ...,
         "isCrisisHandledLocally": false}
    """
    student_id = request.headers.get("X-Student-Id")
    if not student_id:
        logger.warning("SCAN_REQUEST_INVALID", extra={"reason": "missing_student_id"})
        return jsonify({"error": "Missing student identity"}), 401

    data = request.get_json(silent=True) or {}
    message = data.get("message")
    if not message or not isinstance(message, str):
        logger.warning("SCAN_REQUEST_INVALID", extra={"reason": "missing_message"})
        return jsonify({"error": "Missing or invalid message"}), 400

    conversation_id = data.get("conversationId") or None
    tenant_id = request.headers.get("X-Tenant-Id")
    student_id_hash = hash_pii(student_id)

    logger.info(
        "SCAN_REQUESTED",
        extra={
            "conversation_id": conversation_id,
            "student_id_hash": student_id_hash,
            "message_length": len(message),
        }
    )

    if not is_crisis_message(message, keywords):
        return jsonify({
            "isCrisis": False,
            "conversationId": conversation_id,
            "isCrisisHandledLocally": False,
        }), 200

    matches = matched_keywords(message, keywords)
    logger.critical(
        "CRISIS_MESSAGE_DETECTED",
        extra={
            "conversation_id": conversation_id,
            "student_id_hash": student_id_hash,
            "matched_count": len(matches),
            "keyword_version": keywords.version,
            "message_hash": hash_text_for_audit(message),
        }
    )

    published = crisis_publisher.publish_crisis(
        student_id_hash=student_id_hash,
        matched_keywords=matches,
        keyword_version=keywords.version,
        conversation_id=conversation_id,
        tenant_id_hash=hash_pii(tenant_id) if tenant_id else None,
    )
    if not published:
        logger.error(
            "CRISIS_PUBLISH_FAILED",
            extra={
                "conversation_id": conversation_id,
                "student_id_hash": student_id_hash,
                "action": "MANUAL_REVIEW_REQUIRED",
            }
        )

    return jsonify({
        "isCrisis": True,
        "reply": CRISIS_REPLY,
        "conversationId": conversation_id,
        "isCrisisHandledLocally": True,
    }), 200


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    port = int(os.getenv("PORT", "8001"))
    app.run(host="0.0.0.0", port=port, debug=False)
