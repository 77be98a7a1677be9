"""
LLM Providers
=============
Request builders, response parsers and HTTP dispatch for each provider.
"""

from rana.providers.base import ProviderCall, ProviderReply, ProviderSpec
from rana.providers.dispatch import ProviderDispatcher
from rana.providers.registry import PROVIDERS, get_provider
from rana.providers.retry import is_retryable, with_retry
from rana.providers.selection import select_provider

__all__ = [
    "PROVIDERS",
    "ProviderCall",
    "ProviderDispatcher",
    "ProviderReply",
    "ProviderSpec",
    "get_provider",
    "is_retryable",
    "select_provider",
    "with_retry",
]
