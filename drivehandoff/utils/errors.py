"""
Error taxonomy for drivehandoff.
"""

from typing import Any, Dict, Optional
from datetime import datetime, timezone

import httpx


class DriveHandoffError(Exception):
    """Base exception for drivehandoff."""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class ProviderError(DriveHandoffError):
    """Error related to provider operations."""

    def __init__(self, message: str, provider: str, details: Dict[str, Any] = None, error_code: str = "PROVIDER_ERROR"):
        super().__init__(
            message=message,
            error_code=error_code,
            details={**(details or {}), "provider": provider},
        )
        self.provider = provider


class DriveAPIError(ProviderError):
    """Drive returned an error response."""

    def __init__(self, status_code: int, message: str, reason: Optional[str] = None):
        super().__init__(
            message=f"Drive API {status_code}: {message}",
            provider="gdrive",
            details={"status_code": status_code, "reason": reason},
            error_code="DRIVE_API_ERROR",
        )
        self.status_code = status_code
        self.reason = reason


class ProviderConnectionError(ProviderError):
    """Provider connection error."""

    def __init__(self, provider: str, details: Dict[str, Any] = None):
        super().__init__(
            message=f"Failed to connect to {provider} provider",
            provider=provider,
            details=details,
            error_code="PROVIDER_CONNECTION_ERROR",
        )


class ProviderTimeoutError(ProviderError):
    """Provider timeout error."""

    def __init__(self, provider: str, timeout: Optional[float] = None, details: Dict[str, Any] = None):
        suffix = f" after {timeout}s" if timeout else ""
        super().__init__(
            message=f"Timeout connecting to {provider} provider{suffix}",
            provider=provider,
            details={**(details or {}), "timeout": timeout},
            error_code="PROVIDER_TIMEOUT",
        )


class AuthenticationError(DriveHandoffError):
    """Authentication related errors."""

    def __init__(self, message: str = "Authentication failed", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="AUTHENTICATION_ERROR",
            details=details,
        )


class ConfigurationError(DriveHandoffError):
    """Missing or malformed configuration."""

    def __init__(self, message: str, setting: str = None, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details={**(details or {}), "setting": setting} if setting else details,
        )


class ValidationError(DriveHandoffError):
    """Input validation errors."""

    def __init__(self, message: str, field: str = None, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={**(details or {}), "field": field} if field else details,
        )


class TransferError(DriveHandoffError):
    """A step of the ownership transfer failed."""

    step = "transfer"
    code = "TRANSFER_ERROR"

    def __init__(
        self,
        message: str,
        file_id: str,
        recipient_email: str,
        details: Dict[str, Any] = None,
    ):
        super().__init__(
            message=message,
            error_code=self.code,
            details={
                **(details or {}),
                "step": self.step,
                "file_id": file_id,
                "recipient_email": recipient_email,
            },
        )
        self.file_id = file_id
        self.recipient_email = recipient_email


class GrantError(TransferError):
    """Drive rejected the writer + pendingOwner grant."""

    step = "grant"
    code = "GRANT_FAILED"


class PermissionLookupError(TransferError):
    """The recipient has no permission record on the file."""

    step = "lookup"
    code = "LOOKUP_FAILED"


class PromotionError(TransferError):
    """Drive rejected the promotion to owner."""

    step = "promotion"
    code = "PROMOTION_FAILED"


def handle_provider_error(provider: str, operation: str, original_error: Exception) -> ProviderError:
    """Handle and wrap provider-specific errors."""
    details = {"operation": operation, "original_error": str(original_error)}

    if isinstance(original_error, httpx.TimeoutException) or "timeout" in str(original_error).lower():
        return ProviderTimeoutError(provider=provider, details=details)
    elif isinstance(original_error, httpx.ConnectError) or "connection" in str(original_error).lower():
        return ProviderConnectionError(provider=provider, details=details)
    else:
        return ProviderError(
            message=f"Error during {operation} operation",
            provider=provider,
            details=details,
        )

