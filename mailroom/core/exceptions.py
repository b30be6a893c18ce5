"""
Error taxonomy for the mailroom service and its FastAPI handlers.

Every failure the API reports carries a machine-readable ``kind`` in the JSON
body next to the human-readable ``error`` text, so clients can branch on a
field rather than on the transport status.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

REAUTHORIZE_HINT = "Please reauthorize with Google in the Admin panel."


class MailroomError(Exception):
    """Base exception class for all mailroom errors."""

    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "kind": self.kind}
        if self.details:
            payload["details"] = self.details
        return payload


class MissingParameterError(MailroomError):
    """A required request parameter was absent or empty."""

    kind = "missing_parameter"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, parameter: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Missing required parameter: {parameter}",
            details={"parameter": parameter},
        )


class NotFoundError(MailroomError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ConfigNotFoundError(MailroomError):
    """No OAuth configuration matches the callback state."""

    kind = "config_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, config_id: str) -> None:
        super().__init__(
            "Invalid state parameter or configuration not found",
            details={"state": config_id},
        )


class NoActiveConfigurationError(MailroomError):
    kind = "no_active_configuration"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self) -> None:
        super().__init__(
            "No active Google authentication found. Please add and activate a "
            "Google Auth configuration in the Admin panel."
        )


class TokenExchangeFailedError(MailroomError):
    """Google rejected the authorization code exchange."""

    kind = "token_exchange_failed"
    status_code = status.HTTP_502_BAD_GATEWAY


class ReauthorizeRequiredError(MailroomError):
    """The stored credentials can no longer be used without admin consent.

    Raised when a refresh fails (the refresh token is usually revoked) and when
    Gmail keeps answering 401 after a refresh. Retrying cannot fix it.
    """

    kind = "reauthorize_required"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"{reason} {REAUTHORIZE_HINT}", details=details)


class UpstreamError(MailroomError):
    """Gmail answered with a non-2xx status other than 401."""

    kind = "upstream_error"
    status_code = status.HTTP_502_BAD_GATEWAY


class AuthenticationError(MailroomError):
    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class AccessTokenBlockedError(MailroomError):
    kind = "blocked"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self) -> None:
        super().__init__("This access token has been blocked by an administrator.")


class DuplicateResourceError(MailroomError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


async def mailroom_exception_handler(request: Request, exc: MailroomError) -> JSONResponse:
    """Render a ``MailroomError`` as its structured JSON body."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "%s %s failed with %s: %s",
        request.method,
        request.url.path,
        exc.kind,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or "Unknown error occurred", "kind": "internal_error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the structured error handlers on the application."""
    app.add_exception_handler(MailroomError, mailroom_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "AccessTokenBlockedError",
    "AuthenticationError",
    "ConfigNotFoundError",
    "DuplicateResourceError",
    "MailroomError",
    "MissingParameterError",
    "NoActiveConfigurationError",
    "NotFoundError",
    "ReauthorizeRequiredError",
    "TokenExchangeFailedError",
    "UpstreamError",
    "register_exception_handlers",
]
