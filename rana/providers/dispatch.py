"""
Provider Dispatch
=================
Sends a normalized chat call to one provider over HTTP and returns a priced,
normalized response.
"""

import time
from typing import Optional

import httpx
import structlog

from rana.config import settings
from rana.core.errors import (
    AuthenticationError,
    ConfigurationError,
    EmptyResponseError,
    ProviderHTTPError,
    ProviderNetworkError,
    RateLimitError,
)
from rana.core.keys import ApiKeyManager
from rana.core.metrics import COST_USD_TOTAL, REQUEST_LATENCY_SECONDS, REQUESTS_TOTAL
from rana.core.pricing import PricingEngine, get_pricing_engine
from rana.providers.base import ProviderCall
from rana.providers.registry import get_provider
from rana.schemas.chat import ChatResponse

logger = structlog.get_logger()


class ProviderDispatcher:
    """
    Executes provider calls with a shared async HTTP client.

    Unknown providers and missing credentials fail with ConfigurationError
    before any request is made.
    """

    def __init__(
        self,
        keys: ApiKeyManager,
        pricing: Optional[PricingEngine] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.keys = keys
        self.pricing = pricing or get_pricing_engine()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout or settings.http_timeout)

    async def dispatch(self, provider: str, call: ProviderCall) -> ChatResponse:
        spec = get_provider(provider)
        credential = self.keys.get_key(provider)
        if spec.requires_key and credential is None:
            raise ConfigurationError(f"No API key configured for {provider}", provider=provider)

        url = spec.build_url(call.model, credential)
        started = time.perf_counter()
        try:
            response = await self._client.post(
                url,
                json=spec.build_body(call),
                headers=spec.build_headers(credential),
            )
        except httpx.HTTPError as e:
            REQUESTS_TOTAL.labels(provider=provider, model=call.model, status="network_error").inc()
            logger.error("Provider request failed", provider=provider, model=call.model, error=str(e))
            raise ProviderNetworkError(
                f"{provider} request failed: {e}", provider=provider
            ) from e

        elapsed = time.perf_counter() - started
        REQUEST_LATENCY_SECONDS.labels(provider=provider).observe(elapsed)

        if response.status_code >= 400:
            REQUESTS_TOTAL.labels(provider=provider, model=call.model, status=str(response.status_code)).inc()
            raise self._http_error(provider, response)

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not payload:
            raise EmptyResponseError(f"{provider} returned an empty body", provider=provider)

        try:
            reply = spec.parse_response(payload)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise EmptyResponseError(
                f"{provider} returned an unexpected body", provider=provider, details=str(e)
            ) from e
        if not reply.content and not reply.tool_calls:
            raise EmptyResponseError(f"{provider} returned no content", provider=provider)

        cost = self.pricing.calculate_cost(
            call.model, reply.usage.prompt_tokens, reply.usage.completion_tokens
        )
        REQUESTS_TOTAL.labels(provider=provider, model=call.model, status="success").inc()
        COST_USD_TOTAL.labels(provider=provider, model=call.model).inc(float(cost.total_cost))

        logger.debug(
            "Provider call completed",
            provider=provider,
            model=call.model,
            tokens=reply.usage.total_tokens,
            latency_ms=int(elapsed * 1000),
        )
        return ChatResponse(
            provider=provider,
            model=call.model,
            content=reply.content,
            tool_calls=reply.tool_calls,
            usage=reply.usage,
            cost=cost,
            latency_ms=int(elapsed * 1000),
            finish_reason=reply.finish_reason,
            raw=payload,
        )

    @staticmethod
    def _http_error(provider: str, response: httpx.Response) -> ProviderHTTPError:
        try:
            body = response.json()
        except ValueError:
            body = None
        message = get_provider(provider).error_message(body) or response.text or response.reason_phrase
        status = response.status_code
        logger.warning("Provider returned error", provider=provider, status_code=status, message=message)
        if status in (401, 403):
            return AuthenticationError(provider, status, message, details=body)
        if status == 429:
            return RateLimitError(provider, status, message, details=body)
        return ProviderHTTPError(provider, status, message, details=body)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
