"""
Key Manager and Provider Selection Tests
========================================
Credential resolution by tier and optimize-goal routing.
"""

import pytest

from rana.config import Settings
from rana.core.errors import ConfigurationError
from rana.core.keys import ApiKeyManager
from rana.providers import select_provider


class TestApiKeyManager:
    """Tests for tier-based credential resolution."""

    def test_free_tier_uses_user_keys(self):
        """Test free tier returns the caller's own key."""
        keys = ApiKeyManager(tier="free", user_keys={"openai": "sk-1"})

        source = keys.get_key("openai")

        assert source.key == "sk-1"
        assert source.source == "user"

    def test_free_tier_missing_key_is_unavailable(self):
        """Test a missing key on the free tier is None, not an error."""
        keys = ApiKeyManager(tier="free", user_keys={"openai": "sk-1"})

        assert keys.get_key("anthropic") is None
        assert keys.get_available_providers() == ["openai"]

    def test_paid_tier_routes_every_provider_through_token(self):
        """Test paid tiers return the proxy token for any provider."""
        keys = ApiKeyManager(tier="waymaker-pro", waymaker_token="wm-token")

        source = keys.get_key("groq")

        assert source.key == "wm-token"
        assert source.source == "waymaker"
        assert len(keys.get_available_providers()) == 9

    def test_paid_tier_without_token_raises(self):
        """Test a paid tier with no token is a configuration error."""
        keys = ApiKeyManager(tier="enterprise")

        with pytest.raises(ConfigurationError):
            keys.get_key("openai")

    def test_validate_reports_problems(self):
        """Test validate never raises and lists what is missing."""
        assert ApiKeyManager(tier="free").validate() == (
            False, ["Free tier requires at least one user-provided API key"]
        )
        assert ApiKeyManager(tier="enterprise").validate()[0] is False
        assert ApiKeyManager(tier="free", user_keys={"openai": "k"}).validate() == (True, [])

    def test_from_settings_free(self):
        """Test settings with provider keys build a free-tier manager."""
        config = Settings(_env_file=None, openai_api_key="sk-1", anthropic_api_key="sk-2")

        keys = ApiKeyManager.from_settings(config)

        assert keys.tier == "free"
        assert keys.get_available_providers() == ["openai", "anthropic"]

    def test_from_settings_token_means_paid(self):
        """Test a configured proxy token selects a paid tier."""
        config = Settings(_env_file=None, waymaker_token="wm")

        keys = ApiKeyManager.from_settings(config)

        assert keys.is_paid
        assert keys.get_tier_info()["key_source"] == "waymaker"


class TestProviderSelection:
    """Tests for static optimize-goal routing."""

    @pytest.fixture
    def keys(self) -> ApiKeyManager:
        return ApiKeyManager(tier="free", user_keys={"openai": "o", "anthropic": "a", "groq": "g"})

    def test_explicit_provider_is_honored(self, keys, pricing):
        """Test an explicit provider and model pass through unchanged."""
        assert select_provider(keys, pricing, provider="openai", model="gpt-4o") == ("openai", "gpt-4o")

    def test_explicit_provider_gets_goal_model(self, keys, pricing):
        """Test the model defaults by goal for an explicit provider."""
        assert select_provider(keys, pricing, provider="anthropic", optimize="quality") == (
            "anthropic", "claude-3-5-sonnet-20241022"
        )

    def test_unknown_provider_rejected(self, keys, pricing):
        """Test an unknown provider name raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            select_provider(keys, pricing, provider="nope")

    def test_cost_picks_cheapest_available(self, keys, pricing):
        """Test cost routing picks the cheapest configured model."""
        assert select_provider(keys, pricing, optimize="cost") == ("groq", "llama-3.1-8b-instant")

    def test_quality_and_speed_orders(self, keys, pricing):
        """Test quality prefers anthropic and speed prefers groq."""
        assert select_provider(keys, pricing, optimize="quality")[0] == "anthropic"
        assert select_provider(keys, pricing, optimize="speed")[0] == "groq"

    def test_balanced_prefers_anthropic(self, keys, pricing):
        """Test balanced routing uses anthropic's default model when available."""
        assert select_provider(keys, pricing, provider="auto") == ("anthropic", "claude-3-5-haiku-20241022")

    def test_balanced_falls_back_to_first_available(self, pricing):
        """Test balanced routing without anthropic uses the first available provider."""
        keys = ApiKeyManager(tier="free", user_keys={"groq": "g", "mistral": "m"})

        assert select_provider(keys, pricing)[0] == "mistral"

    def test_no_credentials(self, pricing):
        """Test auto selection with nothing configured fails clearly."""
        with pytest.raises(ConfigurationError, match="No provider credentials"):
            select_provider(ApiKeyManager(tier="free"), pricing)
