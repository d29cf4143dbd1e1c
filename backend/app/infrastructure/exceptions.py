"""
Custom Exceptions for ARTI Ed

Hierarchical exception classes for proper error handling across layers.
Each class maps to one HTTP status in ``app.main``.
"""

from typing import Optional, Dict, Any


class ArtiEdError(Exception):
    """Base exception for all ARTI Ed errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(ArtiEdError):
    """Raised when input validation fails."""
    pass


class DuplicateInvitationError(ValidationError):
    """Raised when a pending invitation already exists for an email."""

    def __init__(self, email: str, subscription_id: str):
        super().__init__(
            f"An invitation is already pending for {email}",
            details={"invited_email": email, "subscription_id": subscription_id},
        )


class AuthorizationError(ArtiEdError):
    """Raised when the caller may not perform an action."""
    pass


class SignatureError(ArtiEdError):
    """Raised when a webhook payload fails signature verification."""
    pass


class PersistenceError(ArtiEdError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(ArtiEdError):
    """Raised when a requested resource does not exist; not a data-store failure."""
    pass


class PaymentProviderError(ArtiEdError):
    """Raised when a Stripe API call fails."""
    pass


class HandlerError(ArtiEdError):
    """Raised when a webhook event could not be handled."""

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        event_type: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if event_id:
            details["event_id"] = event_id
        if event_type:
            details["event_type"] = event_type
        super().__init__(message, details, original_error)


class ConfigurationError(ArtiEdError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
