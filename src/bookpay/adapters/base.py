"""
Payment method adapter contract.

confirm() never raises for expected failures: declines, validation problems,
expired handles and transport errors all come back as a ConfirmationResult so
the orchestrator can classify them.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from bookpay.errors import AuthorizationExpiredError, BookPayError, ErrorClass
from bookpay.models.payment import (
    BillingDetails,
    ConfirmationResult,
    PaymentAuthorization,
    PaymentMethod,
)
from bookpay.psp import PspClient

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = {"succeeded", "requires_action"}
DEFAULT_WIDGET_READY_TIMEOUT_S = 15.0


class PaymentMethodAdapter(ABC):
    method: PaymentMethod
    # card and BNPL rails render an embedded payment-input widget that must load first
    needs_widget = True

    def __init__(
        self,
        psp: Optional[PspClient] = None,
        return_url: Optional[str] = None,
        widget_ready_timeout: float = DEFAULT_WIDGET_READY_TIMEOUT_S,
    ):
        self._psp = psp
        self._return_url = return_url
        self._widget_ready_timeout = widget_ready_timeout

    @abstractmethod
    def validate(self, billing: BillingDetails) -> dict[str, str]:
        """Field name -> message for every missing or unacceptable required field."""

    async def confirm(
        self,
        auth: Optional[PaymentAuthorization],
        billing: BillingDetails,
        widget_ready: Optional[asyncio.Event] = None,
    ) -> ConfirmationResult:
        """Confirm one checkout. widget_ready is that checkout's own "widget loaded" signal."""
        errors = self.validate(billing)
        if errors:
            return self.validation_failure(billing, errors)

        if self.needs_widget:
            if widget_ready is None:
                widget_ready = asyncio.Event()
            try:
                await asyncio.wait_for(widget_ready.wait(), timeout=self._widget_ready_timeout)
            except asyncio.TimeoutError:
                return ConfirmationResult.failure(
                    ErrorClass.NETWORK,
                    "The payment form did not finish loading. Please refresh and try again.",
                    error_code="widget_not_ready",
                )

        try:
            data = await self._confirm(auth, billing)
        except BookPayError as e:
            logger.info("%s confirmation failed: %s (%s)", self.method.value, e.message, e.code)
            return ConfirmationResult.failure(e.error_class or ErrorClass.TERMINAL, e.message, e.code)
        return self._interpret(data)

    @abstractmethod
    async def _confirm(self, auth: Optional[PaymentAuthorization], billing: BillingDetails) -> dict[str, Any]:
        """Talk to the rail. May raise BookPayError subclasses."""

    def validation_failure(self, billing: BillingDetails, errors: dict[str, str]) -> ConfirmationResult:
        return ConfirmationResult.failure(
            ErrorClass.VALIDATION,
            "Please complete all required fields.",
            field_errors=errors,
        )

    def _interpret(self, data: dict[str, Any]) -> ConfirmationResult:
        status = data.get("status", "")
        if status in SUCCESS_STATUSES:
            return ConfirmationResult(success=True, status=status, provider_payment_id=data.get("id"))
        return ConfirmationResult.failure(
            ErrorClass.TERMINAL,
            "Payment completed but status is unclear. Please contact support.",
            error_code=f"unexpected_status:{status or 'unknown'}",
            status=status or None,
            provider_payment_id=data.get("id"),
        )

    def _require_auth(self, auth: Optional[PaymentAuthorization]) -> PaymentAuthorization:
        if auth is None:
            raise AuthorizationExpiredError("No payment authorization to confirm")
        if self._psp is None:
            raise RuntimeError(f"{type(self).__name__} needs a PSP client")
        return auth


def address_errors(billing: BillingDetails) -> dict[str, str]:
    labels = {"line1": "Street address", "city": "City", "state": "State", "postal_code": "ZIP code"}
    return {f"address.{f}": f"{labels[f]} is required" for f in billing.address.missing_fields()}


def name_errors(billing: BillingDetails) -> dict[str, str]:
    return {} if billing.name.strip() else {"name": "Name is required"}


def email_errors(billing: BillingDetails) -> dict[str, str]:
    email = billing.email.strip()
    if not email:
        return {"email": "Email is required"}
    if "@" not in email or "." not in email.rsplit("@", 1)[-1]:
        return {"email": "Email address is invalid"}
    return {}
