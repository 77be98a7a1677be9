"""
API Dependencies
================
Request-scoped access to the shared RanaClient.
"""

from fastapi import HTTPException, Request, status

from rana.client import RanaClient
from rana.core.errors import (
    BudgetExceededError,
    ConfigurationError,
    ContentBlockedError,
    ContentTooLongError,
    ProviderHTTPError,
    ProviderNetworkError,
    RanaError,
)


def get_client(request: Request) -> RanaClient:
    """The client created by the application lifespan."""
    client = getattr(request.app.state, "client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Client not initialized",
        )
    return client


def http_error(error: RanaError) -> HTTPException:
    """Map a RanaError onto the status code a caller should see."""
    if isinstance(error, ConfigurationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, BudgetExceededError):
        code = status.HTTP_402_PAYMENT_REQUIRED
    elif isinstance(error, ContentBlockedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, ContentTooLongError):
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    elif isinstance(error, (ProviderHTTPError, ProviderNetworkError)):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=error.to_dict())
