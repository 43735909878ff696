"""Guidance Service: supportive text and next steps for a scored assessment.

Wraps the AI collaborator that turns (instrument, responses, score,
severity) into short guidance and an ordered list of recommended actions.

Usage:
    from mindscreen.services.guidance_service import (
        GuidanceConfig, create_guidance_provider,
    )
    provider = create_guidance_provider(GuidanceConfig.from_env())
    result = await provider.get_guidance(instrument, responses, score, severity)
"""

from .config import GuidanceConfig, GuidanceProviderType
from .provider import (
    GuidanceProvider,
    GuidanceResult,
    OpenAIGuidanceProvider,
    StaticGuidanceProvider,
    create_guidance_provider,
    parse_guidance_payload,
)

__all__ = [
    "GuidanceConfig",
    "GuidanceProviderType",
    "GuidanceProvider",
    "GuidanceResult",
    "OpenAIGuidanceProvider",
    "StaticGuidanceProvider",
    "create_guidance_provider",
    "parse_guidance_payload",
]
