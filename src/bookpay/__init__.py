"""
bookpay — checkout pricing and payment confirmation for appointment bookings.

Quotes a service across card and pay-later rails, keeps one fresh PSP
authorization per checkout and drives confirmation to a terminal state.
"""

from bookpay.client import BookPay, AsyncBookPay
from bookpay.config import Settings
from bookpay.pricing import PricingEngine
from bookpay.orchestrator import CheckoutContext, CheckoutOutcome, CheckoutState, ConfirmationOrchestrator
from bookpay.errors import (
    BookPayError,
    ValidationError,
    NetworkError,
    AuthorizationExpiredError,
    TerminalPaymentError,
    ConfigError,
)
from bookpay.models.payment import PaymentMethod, BillingDetails, Address, PreApproval
from bookpay.models.pricing import CouponClass, DepositPolicy

__version__ = "0.1.0"
__all__ = [
    "BookPay",
    "AsyncBookPay",
    "Settings",
    "PricingEngine",
    "CheckoutContext",
    "CheckoutOutcome",
    "CheckoutState",
    "ConfirmationOrchestrator",
    "BookPayError",
    "ValidationError",
    "NetworkError",
    "AuthorizationExpiredError",
    "TerminalPaymentError",
    "ConfigError",
    "PaymentMethod",
    "BillingDetails",
    "Address",
    "PreApproval",
    "CouponClass",
    "DepositPolicy",
]
