"""
Provider Selection
==================
Static mapping from an optimize goal to a (provider, model) pair.

Nothing here adapts to observed latency or quality; the tables are fixed.
"""

from typing import Optional

from rana.core.errors import ConfigurationError
from rana.core.keys import ApiKeyManager
from rana.core.pricing import PricingEngine
from rana.providers.registry import PROVIDERS, get_provider

AUTO = "auto"

QUALITY_ORDER = ("anthropic", "openai", "google", "mistral", "xai", "cohere", "together", "groq", "ollama")
SPEED_ORDER = ("groq", "google", "openai", "anthropic", "mistral", "together", "cohere", "xai", "ollama")
BALANCED_PROVIDER = "anthropic"


def _model_for(provider: str, optimize: str, pricing: PricingEngine) -> str:
    spec = get_provider(provider)
    if optimize == "quality":
        return spec.quality_model
    if optimize == "speed":
        return spec.speed_model
    if optimize == "cost":
        cheapest = pricing.cheapest_model([provider])
        if cheapest:
            return cheapest[1]
    return spec.default_model


def select_provider(
    keys: ApiKeyManager,
    pricing: PricingEngine,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    optimize: str = "balanced",
) -> tuple[str, str]:
    """
    Resolve the provider and model for a request.

    An explicit provider is honored as-is (its model defaulted by ``optimize``).
    ``auto`` or no provider picks among providers that have credentials.
    """
    if provider and provider != AUTO:
        get_provider(provider)
        return provider, model or _model_for(provider, optimize, pricing)

    available = [p for p in keys.get_available_providers() if p in PROVIDERS]
    if not available:
        raise ConfigurationError("No provider credentials configured")

    if optimize == "cost":
        cheapest = pricing.cheapest_model(available)
        if cheapest:
            chosen = cheapest[0]
            return chosen, model or cheapest[1]
        chosen = available[0]
    elif optimize == "quality":
        chosen = next(p for p in QUALITY_ORDER if p in available)
    elif optimize == "speed":
        chosen = next(p for p in SPEED_ORDER if p in available)
    else:
        chosen = BALANCED_PROVIDER if BALANCED_PROVIDER in available else available[0]

    return chosen, model or _model_for(chosen, optimize, pricing)
