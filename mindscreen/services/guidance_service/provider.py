"""Guidance providers: score + severity -> supportive text and actions.

The orchestrator treats a provider as an external collaborator. Providers
own their failure policy; on failure they raise GuidanceUnavailable and
never invent guidance text in its place.
"""
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import openai

from mindscreen.shared.models import GuidanceUnavailable, Instrument, SeverityLevel
from .config import GuidanceConfig, GuidanceProviderType
from .prompts import build_guidance_prompt

logger = logging.getLogger(__name__)

MAX_GUIDANCE_WORDS = 100
MAX_ACTIONS = 7
MAX_ACTION_WORDS = 15

_CODE_FENCE = re.compile(r"```(?:json)?\s*")


@dataclass(frozen=True)
class GuidanceResult:
    """Guidance text plus ordered recommended actions."""
    guidance: str
    recommended_actions: Tuple[str, ...] = field(default_factory=tuple)


class GuidanceProvider(ABC):
    """Abstract guidance collaborator."""

    @abstractmethod
    async def get_guidance(
        self,
        instrument: Instrument,
        responses: Mapping[str, Any],
        score: int,
        severity: SeverityLevel,
    ) -> GuidanceResult:
        """Produce guidance for a scored assessment.

        Raises:
            GuidanceUnavailable: If guidance cannot be produced
        """


def _truncate_words(text: str, limit: int) -> str:
    return " ".join(text.split()[:limit])


def parse_guidance_payload(text: Optional[str]) -> GuidanceResult:
    """Parse and trim a model's JSON reply.

    Markdown code fences are stripped. Guidance is capped at 100 words,
    actions at 7 items of 15 words each; empty actions are dropped.

    Raises:
        GuidanceUnavailable: If the reply is empty, not a JSON object, or
            has no guidance text
    """
    if not text or not text.strip():
        raise GuidanceUnavailable("Guidance service returned an empty reply")

    cleaned = _CODE_FENCE.sub("", text).strip()
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise GuidanceUnavailable(f"Guidance reply is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise GuidanceUnavailable("Guidance reply is not a JSON object")

    guidance = _truncate_words(str(payload.get("guidance") or ""), MAX_GUIDANCE_WORDS)
    if not guidance:
        raise GuidanceUnavailable("Guidance reply has no guidance text")

    raw_actions = payload.get("recommendedActions")
    if not isinstance(raw_actions, list):
        raw_actions = []

    actions = []
    for raw_action in raw_actions:
        # "|" is reserved by the storage encoding
        action = _truncate_words(str(raw_action or "").replace("|", "/"), MAX_ACTION_WORDS)
        if action:
            actions.append(action)
        if len(actions) == MAX_ACTIONS:
            break

    return GuidanceResult(guidance=guidance, recommended_actions=tuple(actions))


class OpenAIGuidanceProvider(GuidanceProvider):
    """Guidance generated by an OpenAI chat model.

    A fresh AsyncOpenAI client is opened and closed for every request.
    Flask runs each async view on its own event loop, and a client's
    connection pool is bound to the loop that first used it.
    """

    def __init__(
        self,
        config: GuidanceConfig,
        client_factory: Optional[Callable[[], Any]] = None,
    ):
        """Initialize provider.

        Args:
            config: Guidance configuration with API key
            client_factory: Returns an async-context-managed client per request
        """
        if client_factory is None and not config.api_key:
            raise ValueError("OpenAI API key required")

        self.config = config
        self._client_factory = client_factory or self._new_client

        logger.info(
            "GUIDANCE_PROVIDER_INITIALIZED",
            extra={"provider": "openai", "model": config.model_name}
        )

    def _new_client(self) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(
            api_key=self.config.api_key,
            timeout=self.config.timeout_seconds,
        )

    async def get_guidance(
        self,
        instrument: Instrument,
        responses: Mapping[str, Any],
        score: int,
        severity: SeverityLevel,
    ) -> GuidanceResult:
        prompt = build_guidance_prompt(instrument, responses, score, severity)
        start_time = time.perf_counter()

        try:
            async with self._client_factory() as client:
                response = await client.chat.completions.create(
                    model=self.config.model_name,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens,
                )
            text = response.choices[0].message.content
        except Exception as e:
            logger.error(
                "GUIDANCE_REQUEST_FAILED",
                extra={
                    "form_type": instrument.value,
                    "model": self.config.model_name,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            raise GuidanceUnavailable(f"Guidance service request failed: {e}") from e

        try:
            result = parse_guidance_payload(text)
        except GuidanceUnavailable as e:
            logger.error(
                "GUIDANCE_REPLY_INVALID",
                extra={"form_type": instrument.value, "error": str(e)}
            )
            raise

        logger.info(
            "GUIDANCE_GENERATED",
            extra={
                "form_type": instrument.value,
                "severity": severity.value,
                "action_count": len(result.recommended_actions),
                "latency_ms": (time.perf_counter() - start_time) * 1000,
            }
        )
        return result


_SIGNIFICANT_CONCERN = GuidanceResult(
    guidance=(
        "Your results suggest significant concerns, and it's really important to reach "
        "out for support right away. You don't have to handle this alone; professional "
        "help is available and can make a real difference. Please contact your campus "
        "counseling center or a trusted person today. Many students have been where you "
        "are and found their way through with the right support. Taking action now is a "
        "crucial step toward feeling better."
    ),
    recommended_actions=(
        "Contact your campus counseling services immediately.",
        "Talk to a trusted friend or family member.",
        "Avoid being alone and stay around supportive people.",
        "Take a break from overwhelming tasks if needed.",
        "Use grounding tools for calming.",
        "Seek professional help as soon as possible.",
        "Call 988 Suicide & Crisis Lifeline if in crisis.",
    ),
)

STATIC_GUIDANCE: Dict[SeverityLevel, GuidanceResult] = {
    SeverityLevel.MINIMAL: GuidanceResult(
        guidance=(
            "Your results show minimal concerns, which is great. You're managing well and "
            "being proactive about your mental health is important. Keep up the healthy "
            "habits you have in place. It's normal to have ups and downs, so continue "
            "checking in with yourself. Stay connected with supportive people around you."
        ),
        recommended_actions=(
            "Maintain your current routines.",
            "Stay connected with supportive people.",
            "Get regular sleep and rest.",
            "Engage in activities you enjoy.",
            "Use journaling to track your mood.",
            "Monitor changes in mood or stress.",
        ),
    ),
    SeverityLevel.MILD: GuidanceResult(
        guidance=(
            "Your results show mild concerns, which are very common among college students. "
            "Taking this assessment is a positive first step. Small adjustments in your "
            "routine and reaching out for support can make a real difference. Many students "
            "navigate similar feelings, and there are effective strategies to help you feel "
            "better. You're not alone in this experience."
        ),
        recommended_actions=(
            "Practice a simple self-care activity daily.",
            "Maintain consistent sleep and meal routines.",
            "Talk with a friend or mentor.",
            "Try guided meditation or grounding tools.",
            "Use habit trackers to build healthy routines.",
            "Reach out for campus support if symptoms persist.",
        ),
    ),
    SeverityLevel.MODERATE: GuidanceResult(
        guidance=(
            "Your results suggest moderate concerns that deserve attention. Many college "
            "students experience similar challenges, especially with academic and social "
            "pressures. The good news is that support and self-care strategies can really "
            "help. You're taking an important step by checking in. Consider reaching out to "
            "your campus counseling center. You don't have to face this alone."
        ),
        recommended_actions=(
            "Reach out to your campus counseling center.",
            "Talk to someone you trust about how you feel.",
            "Use stress-reduction practices like deep breathing.",
            "Try calming audios or meditation from the app.",
            "Follow a stable routine for sleep and meals.",
            "Connect socially instead of isolating.",
            "Book a counselor session if available.",
        ),
    ),
    SeverityLevel.MODERATELY_SEVERE: _SIGNIFICANT_CONCERN,
    SeverityLevel.SEVERE: _SIGNIFICANT_CONCERN,
}


class StaticGuidanceProvider(GuidanceProvider):
    """Curated per-severity guidance for deployments without an AI backend."""

    def __init__(self, table: Optional[Mapping[SeverityLevel, GuidanceResult]] = None):
        self.table = dict(table or STATIC_GUIDANCE)
        missing = [level.value for level in SeverityLevel if level not in self.table]
        if missing:
            raise ValueError(f"Static guidance missing severity levels: {missing}")

        logger.info("GUIDANCE_PROVIDER_INITIALIZED", extra={"provider": "static"})

    async def get_guidance(
        self,
        instrument: Instrument,
        responses: Mapping[str, Any],
        score: int,
        severity: SeverityLevel,
    ) -> GuidanceResult:
        return self.table[severity]


def create_guidance_provider(config: GuidanceConfig) -> GuidanceProvider:
    """Factory function to create the configured provider.

    Raises:
        ValueError: If the provider is unsupported or misconfigured
    """
    if config.provider == GuidanceProviderType.OPENAI:
        return OpenAIGuidanceProvider(config)
    elif config.provider == GuidanceProviderType.STATIC:
        return StaticGuidanceProvider()
    else:
        raise ValueError(f"Unsupported guidance provider: {config.provider}")
