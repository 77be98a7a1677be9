"""
Token Cost Engine
=================
Per-model pricing for every supported provider.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog
import yaml

from rana.config import settings
from rana.schemas.chat import CostBreakdown

logger = structlog.get_logger()

ONE_THOUSAND = Decimal("1000")
COST_QUANTUM = Decimal("0.0000000001")

DEFAULT_PRICING: dict[str, dict[str, dict[str, float]]] = {
    "anthropic": {
        "claude-3-5-sonnet-20241022": {"input_per_1k": 0.003, "output_per_1k": 0.015},
        "claude-3-5-haiku-20241022": {"input_per_1k": 0.0008, "output_per_1k": 0.004},
        "claude-3-opus-20240229": {"input_per_1k": 0.015, "output_per_1k": 0.075},
    },
    "openai": {
        "gpt-4o": {"input_per_1k": 0.0025, "output_per_1k": 0.01},
        "gpt-4o-mini": {"input_per_1k": 0.00015, "output_per_1k": 0.0006},
        "gpt-4-turbo": {"input_per_1k": 0.01, "output_per_1k": 0.03},
    },
    "google": {
        "gemini-2.0-flash-exp": {"input_per_1k": 0, "output_per_1k": 0},
        "gemini-1.5-pro": {"input_per_1k": 0.00125, "output_per_1k": 0.005},
        "gemini-1.5-flash": {"input_per_1k": 0.000075, "output_per_1k": 0.0003},
    },
    "groq": {
        "llama-3.1-70b-versatile": {"input_per_1k": 0.00059, "output_per_1k": 0.00079},
        "llama-3.1-8b-instant": {"input_per_1k": 0.00005, "output_per_1k": 0.00008},
        "mixtral-8x7b-32768": {"input_per_1k": 0.00024, "output_per_1k": 0.00024},
    },
    "mistral": {
        "mistral-large-latest": {"input_per_1k": 0.002, "output_per_1k": 0.006},
        "mistral-small-latest": {"input_per_1k": 0.0002, "output_per_1k": 0.0006},
    },
    "together": {
        "meta-llama/Llama-3.2-90B-Vision-Instruct-Turbo": {"input_per_1k": 0.00088, "output_per_1k": 0.00088},
        "Qwen/Qwen2.5-72B-Instruct-Turbo": {"input_per_1k": 0.0006, "output_per_1k": 0.0006},
    },
    "xai": {
        "grok-beta": {"input_per_1k": 0.005, "output_per_1k": 0.015},
    },
    "cohere": {
        "command-r-plus": {"input_per_1k": 0.0025, "output_per_1k": 0.01},
        "command-r": {"input_per_1k": 0.00015, "output_per_1k": 0.0006},
    },
    "ollama": {
        "llama3.2": {"input_per_1k": 0, "output_per_1k": 0},
    },
}


class PricingEngine:
    """
    Token pricing engine keyed by model.

    Loads rates from YAML, falling back to the built-in table. A model missing
    from the table costs nothing rather than raising.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or settings.pricing_config_path
        self._pricing_data: dict[str, Any] = {}
        self._load_pricing()

    def _load_pricing(self) -> None:
        """Load pricing configuration from YAML file."""
        config_file = Path(self.config_path)

        if not config_file.exists():
            logger.warning("Pricing config not found, using defaults", path=self.config_path)
            self._pricing_data = DEFAULT_PRICING
            return

        try:
            with open(config_file) as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ValueError("pricing config must be a mapping of provider to models")
            self._pricing_data = loaded
            logger.info("Loaded pricing configuration", path=self.config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error("Failed to load pricing config", error=str(e))
            self._pricing_data = DEFAULT_PRICING

    def reload(self) -> None:
        """Reload pricing configuration from file."""
        self._load_pricing()

    @property
    def providers(self) -> list[str]:
        return [p for p, models in self._pricing_data.items() if isinstance(models, dict)]

    def _provider_models(self, provider: str) -> dict[str, Any]:
        models = self._pricing_data.get(provider.lower(), {})
        return models if isinstance(models, dict) else {}

    def find_rates(self, model: str) -> Optional[tuple[Decimal, Decimal]]:
        """
        Look up (input_per_1k, output_per_1k) for a model.

        Exact ids win; otherwise a dated variant such as ``gpt-4o-2024-08-06``
        resolves to the longest configured id it extends.
        """
        best: Optional[tuple[str, dict[str, Any]]] = None
        for provider in self.providers:
            for model_key, pricing in self._provider_models(provider).items():
                if not isinstance(pricing, dict):
                    continue
                if model_key == model:
                    return self._to_rates(pricing)
                if model.startswith(f"{model_key}-") and (best is None or len(model_key) > len(best[0])):
                    best = (model_key, pricing)
        return self._to_rates(best[1]) if best else None

    @staticmethod
    def _to_rates(pricing: dict[str, Any]) -> tuple[Decimal, Decimal]:
        return (
            Decimal(str(pricing.get("input_per_1k", 0))),
            Decimal(str(pricing.get("output_per_1k", 0))),
        )

    def get_model_pricing(self, model: str) -> tuple[Decimal, Decimal]:
        """Return the model's rates, or zero rates when unknown."""
        return self.find_rates(model) or (Decimal("0"), Decimal("0"))

    def calculate_cost(
        self,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
    ) -> CostBreakdown:
        """
        Calculate the cost of a single request.

        Args:
            model: Model identifier
            prompt_tokens: Number of input tokens
            completion_tokens: Number of output tokens

        Returns:
            Input, output and total cost in USD
        """
        input_price, output_price = self.get_model_pricing(model)

        input_cost = ((Decimal(prompt_tokens) / ONE_THOUSAND) * input_price).quantize(COST_QUANTUM)
        output_cost = ((Decimal(completion_tokens) / ONE_THOUSAND) * output_price).quantize(COST_QUANTUM)

        return CostBreakdown(
            input_cost=input_cost,
            output_cost=output_cost,
            total_cost=input_cost + output_cost,
        )

    def get_provider_models(self, provider: str) -> list[dict[str, Any]]:
        """Get all configured models and their pricing for a provider."""
        models = []
        for model, pricing in self._provider_models(provider).items():
            if isinstance(pricing, dict) and "input_per_1k" in pricing:
                input_price, output_price = self._to_rates(pricing)
                models.append({
                    "model": model,
                    "input_price_per_1k": input_price,
                    "output_price_per_1k": output_price,
                })

        return sorted(models, key=lambda x: x["model"])

    def cheapest_model(self, providers: Iterable[str]) -> Optional[tuple[str, str]]:
        """
        Return the (provider, model) with the lowest combined 1K-token rate.

        Ties keep the first candidate in ``providers`` order.
        """
        best: Optional[tuple[Decimal, str, str]] = None
        for provider in providers:
            for entry in self.get_provider_models(provider):
                rate = entry["input_price_per_1k"] + entry["output_price_per_1k"]
                if best is None or rate < best[0]:
                    best = (rate, provider, entry["model"])
        return (best[1], best[2]) if best else None


@lru_cache
def get_pricing_engine() -> PricingEngine:
    """Get cached pricing engine instance."""
    return PricingEngine()
