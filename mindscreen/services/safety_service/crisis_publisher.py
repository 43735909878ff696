"""Crisis event publisher for Safety Service.

Publishes crisis events to a Kinesis stream so that counselor escalation
runs decoupled from the chat reply. The local crisis reply is returned to
the student whether or not publishing succeeds.
"""
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import boto3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SafetyCrisisEvent:
    """Immutable crisis event from Safety Service."""
    event_id: str
    event_type: str = "safety.crisis.detected"
    conversation_id: Optional[str] = None
    student_id_hash: str = ""
    tenant_id_hash: Optional[str] = None
    matched_keywords: List[str] = field(default_factory=list)
    keyword_version: str = ""
    requires_human_intervention: bool = True
    escalation_path: str = "counselor_alert"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_kinesis_payload(self) -> dict:
        """Convert to Kinesis record payload."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "source": "safety-service",
            "data": {
                "conversation_id": self.conversation_id,
                "student_id_hash": self.student_id_hash,
                "tenant_id_hash": self.tenant_id_hash,
                "matched_keywords": self.matched_keywords,
                "keyword_version": self.keyword_version,
                "requires_human_intervention": self.requires_human_intervention,
                "escalation_path": self.escalation_path,
            }
        }


class CrisisEventPublisher:
    """Publishes crisis events to Kinesis.

    Failure Handling:
        - Publishing failure does NOT block the crisis reply
        - Failures are logged at CRITICAL level for alerting
    """

    def __init__(
        self,
        stream_name: str = "mindscreen-crisis-events",
        enabled: bool = True,
        region: str = "us-east-1",
    ):
        self.stream_name = stream_name
        self.enabled = enabled
        self.region = region
        self._kinesis_client = None

        logger.info(
            "CRISIS_PUBLISHER_INITIALIZED",
            extra={
                "stream_name": stream_name,
                "enabled": enabled,
                "region": region,
            }
        )

    @property
    def kinesis_client(self):
        """Lazy initialization of Kinesis client."""
        if self._kinesis_client is None and self.enabled:
            try:
                self._kinesis_client = boto3.client("kinesis", region_name=self.region)
            except Exception as e:
                logger.error(
                    "KINESIS_CLIENT_INIT_FAILED",
                    extra={"error": str(e), "error_type": type(e).__name__}
                )
        return self._kinesis_client

    def publish_crisis(
        self,
        student_id_hash: str,
        matched_keywords: List[str],
        keyword_version: str,
        conversation_id: Optional[str] = None,
        tenant_id_hash: Optional[str] = None,
    ) -> bool:
        """Publish a crisis event.

        Args:
            student_id_hash: Hashed student identifier (also the partition key)
            matched_keywords: Crisis phrases found in the message
            keyword_version: Version of the keyword set that matched
            conversation_id: Chat conversation, if any
            tenant_id_hash: Hashed college identifier for routing

        Returns:
            True if published successfully, False otherwise
        """
        if not self.enabled:
            logger.info(
                "CRISIS_PUBLISH_SKIPPED",
                extra={
                    "conversation_id": conversation_id,
                    "reason": "publishing_disabled",
                }
            )
            return False

        event = SafetyCrisisEvent(
            event_id=f"evt_{uuid.uuid4().hex[:12]}",
            conversation_id=conversation_id,
            student_id_hash=student_id_hash,
            tenant_id_hash=tenant_id_hash,
            matched_keywords=list(matched_keywords),
            keyword_version=keyword_version,
        )
        payload = event.to_kinesis_payload()

        client = self.kinesis_client
        if client is None:
            logger.critical(
                "CRISIS_EVENT_FALLBACK_LOG",
                extra={
                    "event_id": event.event_id,
                    "payload": json.dumps(payload),
                    "reason": "kinesis_client_unavailable",
                    "action": "MANUAL_PROCESSING_REQUIRED",
                }
            )
            return False

        try:
            response = client.put_record(
                StreamName=self.stream_name,
                Data=json.dumps(payload),
                PartitionKey=student_id_hash,
            )
        except Exception as e:
            logger.critical(
                "CRISIS_EVENT_PUBLISH_FAILED",
                extra={
                    "event_id": event.event_id,
                    "conversation_id": conversation_id,
                    "student_id_hash": student_id_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                    "payload": json.dumps(payload),
                }
            )
            return False

        logger.critical(
            "CRISIS_EVENT_PUBLISHED",
            extra={
                "event_id": event.event_id,
                "conversation_id": conversation_id,
                "student_id_hash": student_id_hash,
                "shard_id": response.get("ShardId"),
                "sequence_number": response.get("SequenceNumber"),
            }
        )
        return True
