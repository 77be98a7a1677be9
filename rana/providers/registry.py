"""Immutable table of supported providers."""

from types import MappingProxyType
from typing import Mapping

from rana.core.errors import ConfigurationError
from rana.providers.anthropic import ANTHROPIC
from rana.providers.base import ProviderSpec
from rana.providers.google import GOOGLE
from rana.providers.ollama import OLLAMA
from rana.providers.openai_compat import COHERE, GROQ, MISTRAL, OPENAI, TOGETHER, XAI

PROVIDERS: Mapping[str, ProviderSpec] = MappingProxyType({
    spec.name: spec
    for spec in (OPENAI, ANTHROPIC, GOOGLE, XAI, MISTRAL, COHERE, TOGETHER, GROQ, OLLAMA)
})


def get_provider(name: str) -> ProviderSpec:
    try:
        return PROVIDERS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown provider: {name}", provider=name) from None
