"""
API Key Manager
===============
Resolves provider credentials by billing tier.

Free tier uses the caller's own per-provider keys; a missing key just means the
provider is unavailable. Paid tiers route every provider through one proxy
token, and a missing token is a configuration error.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

from rana.config import Settings, settings
from rana.core.errors import ConfigurationError

Tier = Literal["free", "waymaker-pro", "enterprise"]

SUPPORTED_PROVIDERS: tuple[str, ...] = (
    "openai",
    "anthropic",
    "google",
    "xai",
    "mistral",
    "cohere",
    "together",
    "groq",
    "ollama",
)


@dataclass(frozen=True)
class ApiKeySource:
    provider: str
    key: str
    source: Literal["user", "waymaker"]
    tier: Tier


@dataclass
class ApiKeyManager:
    tier: Tier = "free"
    user_keys: dict[str, str] = field(default_factory=dict)
    waymaker_token: Optional[str] = None
    waymaker_api_url: str = "https://api.waymaker.cx"

    @property
    def is_paid(self) -> bool:
        return self.tier != "free"

    def get_key(self, provider: str) -> Optional[ApiKeySource]:
        """
        Resolve the credential for a provider.

        Returns None on the free tier when no key is configured. Raises
        ConfigurationError on a paid tier without a proxy token.
        """
        if not self.is_paid:
            key = self.user_keys.get(provider)
            if not key:
                return None
            return ApiKeySource(provider=provider, key=key, source="user", tier=self.tier)

        if not self.waymaker_token:
            raise ConfigurationError(f"Waymaker token not configured for {self.tier} tier")
        return ApiKeySource(
            provider=provider,
            key=self.waymaker_token,
            source="waymaker",
            tier=self.tier,
        )

    def is_provider_available(self, provider: str) -> bool:
        return self.get_key(provider) is not None

    def get_available_providers(self) -> list[str]:
        return [p for p in SUPPORTED_PROVIDERS if self.is_provider_available(p)]

    def validate(self) -> tuple[bool, list[str]]:
        """Check the tier has the credentials it needs. Never raises."""
        errors: list[str] = []
        if not self.is_paid:
            if not any(self.user_keys.values()):
                errors.append("Free tier requires at least one user-provided API key")
        elif not self.waymaker_token:
            errors.append(f"{self.tier} tier requires a Waymaker token")
        return (not errors, errors)

    def get_tier_info(self) -> dict:
        valid, _ = self.validate()
        return {
            "tier": self.tier,
            "key_source": "waymaker" if self.is_paid else "user",
            "providers_available": len(self.get_available_providers()) if valid else 0,
            "has_tokens": self.is_paid,
        }

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "ApiKeyManager":
        """Paid tier when a proxy token is configured, otherwise free tier."""
        config = config or settings
        if config.waymaker_token or (config.tier and config.tier != "free"):
            return cls(
                tier=config.tier if config.tier and config.tier != "free" else "waymaker-pro",
                waymaker_token=config.waymaker_token,
                waymaker_api_url=config.waymaker_api_url,
            )
        return cls(tier="free", user_keys=config.provider_keys())
