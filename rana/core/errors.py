"""
Error Types
===========
Exception hierarchy shared by dispatch, agents and security filters.
"""

from typing import Any, Optional


class RanaError(Exception):
    """Base error carrying a machine-readable code and optional provider context."""

    code = "RANA_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.provider = provider
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "provider": self.provider,
            "status_code": self.status_code,
        }


class ConfigurationError(RanaError):
    """Unknown provider, missing proxy token or invalid options."""

    code = "CONFIGURATION_ERROR"


class ProviderHTTPError(RanaError):
    """Provider answered with a non-2xx status."""

    code = "PROVIDER_HTTP_ERROR"

    def __init__(self, provider: str, status_code: int, message: str, details: Any = None):
        super().__init__(
            f"{provider} returned HTTP {status_code}: {message}",
            provider=provider,
            status_code=status_code,
            details=details,
        )
        self.provider_message = message


class AuthenticationError(ProviderHTTPError):
    code = "AUTHENTICATION_ERROR"


class RateLimitError(ProviderHTTPError):
    code = "RATE_LIMIT_ERROR"


class ProviderNetworkError(RanaError):
    """Transport failure or timeout before a response arrived."""

    code = "PROVIDER_NETWORK_ERROR"


class EmptyResponseError(RanaError):
    """Provider body or model turn had neither content nor tool calls."""

    code = "EMPTY_RESPONSE"


class BudgetExceededError(RanaError):
    code = "BUDGET_EXCEEDED"

    def __init__(self, spent: float, limit: float, period: str):
        super().__init__(
            f"Budget exceeded: ${spent:.4f} spent of ${limit:.4f} ({period})",
            status_code=402,
            details={"spent": spent, "limit": limit, "period": period},
        )
        self.spent = spent
        self.limit = limit
        self.period = period


class AgentError(RanaError):
    code = "AGENT_ERROR"


class MaxIterationsExceededError(AgentError):
    code = "MAX_ITERATIONS_EXCEEDED"

    def __init__(self, max_iterations: int):
        super().__init__(f"Agent exceeded maximum iterations ({max_iterations})")
        self.max_iterations = max_iterations


class AgentAbortedError(AgentError):
    code = "AGENT_ABORTED"

    def __init__(self, message: str = "Agent was stopped"):
        super().__init__(message)


class ToolNotFoundError(AgentError):
    code = "TOOL_NOT_FOUND"

    def __init__(self, name: str):
        super().__init__(f'Tool "{name}" not found')
        self.tool_name = name


class ContentBlockedError(RanaError):
    code = "CONTENT_BLOCKED"

    def __init__(self, violations: list, details: Any = None):
        categories = ", ".join(v.category for v in violations)
        super().__init__(
            f"Content blocked due to policy violations: {categories}",
            status_code=403,
            details=details,
        )
        self.violations = violations


class ContentTooLongError(RanaError):
    code = "CONTENT_TOO_LONG"
