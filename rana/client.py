"""
Rana Client
===========
Single entry point for chat requests: provider selection, budget checks,
response caching, dispatch and cost recording.
"""

import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union
from uuid import uuid4

import httpx
import structlog

from rana.cache import CacheProvider, create_cache, request_cache_key
from rana.config import Settings, settings
from rana.core.errors import (
    AuthenticationError,
    ProviderHTTPError,
    ProviderNetworkError,
    RanaError,
)
from rana.core.keys import ApiKeyManager
from rana.core.metrics import CACHE_LOOKUPS_TOTAL
from rana.core.pricing import PricingEngine, get_pricing_engine
from rana.ledger import CostTracker, create_cost_store
from rana.providers import ProviderCall, ProviderDispatcher, get_provider, select_provider
from rana.schemas.chat import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    CostBreakdown,
    StreamChunk,
    ToolDefinition,
)
from rana.schemas.cost import BudgetConfig

logger = structlog.get_logger()

LLMCallable = Callable[..., Awaitable[ChatResponse]]


class RanaPlugin:
    """
    Request lifecycle hooks. Override any subset.

    ``before_request`` may return a replacement request and ``after_response``
    a replacement response; returning None keeps the original.
    """

    name = "plugin"

    async def before_request(self, request: ChatRequest) -> Optional[ChatRequest]:
        return None

    async def after_response(self, request: ChatRequest, response: ChatResponse) -> Optional[ChatResponse]:
        return None

    async def on_error(self, request: ChatRequest, error: Exception) -> None:
        return None


class RanaClient:
    """
    Chat client over every configured provider.

    Flow per request: normalize defaults, enforce the budget, look up the
    cache, dispatch on a miss, record the cost, store the response.
    """

    def __init__(
        self,
        keys: Optional[ApiKeyManager] = None,
        cache: Optional[CacheProvider] = None,
        tracker: Optional[CostTracker] = None,
        pricing: Optional[PricingEngine] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        config: Optional[Settings] = None,
        plugins: Optional[list[RanaPlugin]] = None,
        cache_enabled: Optional[bool] = None,
        fallback_providers: Optional[list[str]] = None,
    ):
        self.config = config or settings
        self.keys = keys or ApiKeyManager.from_settings(self.config)
        self.pricing = pricing or get_pricing_engine()
        self.cache = cache or create_cache(self.config)
        self.cost = tracker or CostTracker(create_cost_store(self.config))
        self.cache_enabled = self.config.cache_enabled if cache_enabled is None else cache_enabled
        self.plugins: list[RanaPlugin] = list(plugins or [])
        self.fallback_providers = list(fallback_providers or [])
        for name in self.fallback_providers:
            get_provider(name)
        self.dispatcher = ProviderDispatcher(
            self.keys,
            pricing=self.pricing,
            http_client=http_client,
            timeout=self.config.http_timeout,
        )

        if self.cost.budget is None and self.config.budget_limit:
            self.cost.set_budget(
                BudgetConfig(
                    limit=self.config.budget_limit,
                    period=self.config.budget_period,
                    action=self.config.budget_action,
                )
            )

    async def initialize(self) -> None:
        await self.cost.store.initialize()

    async def close(self) -> None:
        await self.dispatcher.close()
        await self.cache.close()
        await self.cost.store.close()

    async def __aenter__(self) -> "RanaClient":
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def use(self, plugin: RanaPlugin) -> "RanaClient":
        self.plugins.append(plugin)
        return self

    def _normalize(self, request: ChatRequest) -> tuple[ChatRequest, str, str]:
        optimize = request.optimize or self.config.default_optimize
        provider, model = select_provider(
            self.keys,
            self.pricing,
            provider=request.provider or self.config.default_provider,
            model=request.model or self.config.default_model,
            optimize=optimize,
        )
        normalized = request.model_copy(update={
            "provider": provider,
            "model": model,
            "optimize": optimize,
            "temperature": self.config.default_temperature if request.temperature is None else request.temperature,
            "max_tokens": request.max_tokens or self.config.default_max_tokens,
        })
        return normalized, provider, model

    @staticmethod
    def cache_key(request: ChatRequest) -> str:
        return request_cache_key({
            "provider": request.provider,
            "model": request.model,
            "messages": [m.model_dump(mode="json", exclude_none=True) for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "tools": [t.model_dump(mode="json") for t in request.tools or []],
        })

    async def chat(self, request: Union[ChatRequest, str], **options: Any) -> ChatResponse:
        """
        Send a chat request.

        A plain string becomes a single user message. Keyword options
        override request fields (provider, model, optimize, ...).
        """
        if isinstance(request, str):
            request = ChatRequest(messages=request, **options)
        elif options:
            request = request.model_copy(update=options)

        try:
            for plugin in self.plugins:
                request = await plugin.before_request(request) or request

            request, provider, model = self._normalize(request)
            await self.cost.check_budget(critical=request.critical)

            use_cache = self.cache_enabled and request.cache is not False
            key = self.cache_key(request) if use_cache else None
            response = await self._from_cache(key) if key else None

            if response is None:
                response = await self._dispatch(request, provider, model)
                if key:
                    await self.cache.set(key, response.model_dump(mode="json"))

            await self.cost.track(response, session_id=request.session_id, metadata=request.metadata)

            for plugin in self.plugins:
                response = await plugin.after_response(request, response) or response
            return response
        except Exception as e:
            for plugin in self.plugins:
                await plugin.on_error(request, e)
            raise

    async def _from_cache(self, key: str) -> Optional[ChatResponse]:
        started = time.perf_counter()
        cached = await self.cache.get(key)
        if cached is None:
            CACHE_LOOKUPS_TOTAL.labels(result="miss").inc()
            return None

        CACHE_LOOKUPS_TOTAL.labels(result="hit").inc()
        response = ChatResponse.model_validate(cached)
        logger.debug("Cache hit", provider=response.provider, model=response.model)
        return response.model_copy(update={
            "id": f"chat_{uuid4().hex}",
            "cached": True,
            "created_at": datetime.now(timezone.utc),
            "cost": CostBreakdown.zero(),
            "latency_ms": int((time.perf_counter() - started) * 1000),
        })

    async def _dispatch(self, request: ChatRequest, provider: str, model: str) -> ChatResponse:
        call = ProviderCall(
            model=model,
            messages=request.messages,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
            tools=request.tools,
        )
        try:
            return await self.dispatcher.dispatch(provider, call)
        except (ProviderNetworkError, ProviderHTTPError) as e:
            if isinstance(e, AuthenticationError) or not self.fallback_providers:
                raise
            last_error: RanaError = e

        for fallback in self.fallback_providers:
            if fallback == provider or not self.keys.is_provider_available(fallback):
                continue
            logger.warning("Falling back to provider", failed=provider, fallback=fallback, error=str(last_error))
            spec = get_provider(fallback)
            try:
                return await self.dispatcher.dispatch(
                    fallback,
                    ProviderCall(
                        model=spec.default_model,
                        messages=call.messages,
                        temperature=call.temperature,
                        max_tokens=call.max_tokens,
                        tools=call.tools,
                    ),
                )
            except (ProviderNetworkError, ProviderHTTPError) as e:
                last_error = e
        raise last_error

    async def stream(self, request: Union[ChatRequest, str], **options: Any) -> AsyncIterator[StreamChunk]:
        """
        Yield the response as chunks: content, then done.

        Failures surface as a single error chunk instead of an exception.
        """
        try:
            response = await self.chat(request, **options)
        except RanaError as e:
            yield StreamChunk(type="error", error=e.message)
            return
        if response.content:
            yield StreamChunk(type="content", delta=response.content)
        yield StreamChunk(type="done", response=response)

    async def clear_cache(self) -> None:
        await self.cache.clear()

    def as_llm(self, **defaults: Any) -> LLMCallable:
        """Adapt the client to the ``(messages, tools, **options)`` callable agents use."""

        async def llm(
            messages: list[ChatMessage],
            tools: Optional[list[ToolDefinition]] = None,
            **options: Any,
        ) -> ChatResponse:
            params = {**defaults, **{k: v for k, v in options.items() if v is not None}}
            return await self.chat(ChatRequest(messages=list(messages), tools=tools or None, **params))

        return llm
