"""
Custom exception hierarchy.

Every exception carries a machine-readable ``code`` and the HTTP status it maps
to; the handler in ``astro_api.main`` renders ``to_dict()`` as the response body.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AstroApiException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        code: str = "ASTRO_API_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(AstroApiException):
    """Request data failed validation."""

    def __init__(self, message: str = "Invalid request data", field: Optional[str] = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, details=details)


class AuthenticationError(AstroApiException):
    """Credentials were missing or wrong."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, code="AUTH_ERROR", status_code=401)


class ResourceNotFoundError(AstroApiException):
    """A referenced record does not exist."""

    def __init__(self, resource: str, resource_id: Optional[str] = None) -> None:
        message = f"{resource} not found"
        details: Dict[str, Any] = {"resource": resource}
        if resource_id is not None:
            message = f"{resource} not found: {resource_id}"
            details["resource_id"] = resource_id
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class ConflictError(AstroApiException):
    """The request clashes with an existing record, e.g. a duplicate email."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, code="CONFLICT", status_code=400, details=details)


class ConfigurationError(AstroApiException):
    """A required setting is missing."""

    def __init__(self, message: str, setting: Optional[str] = None) -> None:
        details = {"setting": setting} if setting else {}
        super().__init__(message, code="CONFIGURATION_ERROR", status_code=500, details=details)


class ExternalServiceError(AstroApiException):
    """An upstream service failed or answered with a non-2xx status."""

    def __init__(
        self,
        service: str,
        message: str,
        original_error: Optional[str] = None,
        upstream_status: Optional[int] = None,
    ) -> None:
        details: Dict[str, Any] = {"service": service}
        if original_error:
            details["original_error"] = original_error
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(
            f"{service}: {message}",
            code="EXTERNAL_SERVICE_ERROR",
            status_code=500,
            details=details,
        )


class ExternalServiceTimeoutError(AstroApiException):
    """An upstream service did not answer before the deadline."""

    def __init__(self, service: str, timeout_seconds: float) -> None:
        super().__init__(
            f"{service}: no response within {timeout_seconds:g}s",
            code="EXTERNAL_SERVICE_TIMEOUT",
            status_code=504,
            details={"service": service, "timeout_seconds": timeout_seconds},
        )
