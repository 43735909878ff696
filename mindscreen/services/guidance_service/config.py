"""Guidance Service configuration."""
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class GuidanceProviderType(Enum):
    """Supported guidance backends."""
    OPENAI = "openai"
    STATIC = "static"       # Curated per-severity text, no AI call


@dataclass(frozen=True)
class GuidanceConfig:
    """Configuration for guidance generation."""
    provider: GuidanceProviderType = GuidanceProviderType.STATIC
    api_key: Optional[str] = None
    model_name: str = "gpt-4o-mini"
    temperature: float = 0.6
    max_tokens: int = 256
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "GuidanceConfig":
        """Create config from environment variables.

        Environment variables:
            GUIDANCE_PROVIDER: openai | static (default: openai when
                OPENAI_API_KEY is set, otherwise static)
            OPENAI_API_KEY: OpenAI API key
            OPENAI_MODEL: Chat model (default gpt-4o-mini)
            GUIDANCE_TEMPERATURE: Sampling temperature (default 0.6)
            GUIDANCE_MAX_TOKENS: Completion token cap (default 256)
            GUIDANCE_TIMEOUT_SECONDS: Request timeout (default 30)
        """
        api_key = os.getenv("OPENAI_API_KEY") or None
        default_provider = (
            GuidanceProviderType.OPENAI if api_key else GuidanceProviderType.STATIC
        ).value

        return cls(
            provider=GuidanceProviderType(os.getenv("GUIDANCE_PROVIDER", default_provider)),
            api_key=api_key,
            model_name=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            temperature=float(os.getenv("GUIDANCE_TEMPERATURE", "0.6")),
            max_tokens=int(os.getenv("GUIDANCE_MAX_TOKENS", "256")),
            timeout_seconds=float(os.getenv("GUIDANCE_TIMEOUT_SECONDS", "30")),
        )
