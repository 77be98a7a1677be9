"""
Core Building Blocks
====================
Pricing, credentials, errors and logging shared by every layer.
"""

from rana.core.keys import ApiKeyManager, ApiKeySource
from rana.core.pricing import PricingEngine, get_pricing_engine

__all__ = ["ApiKeyManager", "ApiKeySource", "PricingEngine", "get_pricing_engine"]
