"""
bookpay error types — one class per failure kind a checkout can end in.
"""

from enum import Enum
from typing import Any, Optional


class ErrorClass(str, Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    AUTHORIZATION_EXPIRED = "authorization_expired"
    TERMINAL = "terminal"


class BookPayError(Exception):
    error_class: Optional[ErrorClass] = None

    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class ValidationError(BookPayError):
    """Missing required field, non-positive amount or unsupported method. Never retried."""
    error_class = ErrorClass.VALIDATION

    def __init__(self, message: str, code: str = "validation", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class NetworkError(BookPayError):
    """Transport failure talking to the PSP."""
    error_class = ErrorClass.NETWORK

    def __init__(self, message: str, code: str = "network"):
        super().__init__(code, message)


class AuthorizationExpiredError(BookPayError):
    """The PSP no longer knows the authorization handle (expired or never existed)."""
    error_class = ErrorClass.AUTHORIZATION_EXPIRED

    def __init__(self, message: str, code: str = "authorization_expired"):
        super().__init__(code, message)


class TerminalPaymentError(BookPayError):
    """Declined, fraud block, insufficient funds. The PSP message is shown verbatim."""
    error_class = ErrorClass.TERMINAL

    def __init__(self, message: str, code: str = "terminal", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class ConfigError(BookPayError):
    def __init__(self, message: str):
        super().__init__("config_error", message)
