"""
Buy-now-pay-later rails confirmed through the PSP: Klarna, Affirm and Afterpay.

Klarna and Affirm are gated on a manual pre-approval the customer reports.
Until it is "approved" nothing is submitted; "declined" sends the customer to
the provider's own site instead. Afterpay has no such gate.
"""

from typing import Any, Optional

from bookpay.adapters.base import (
    PaymentMethodAdapter,
    address_errors,
    email_errors,
    name_errors,
)
from bookpay.errors import ErrorClass
from bookpay.models.payment import (
    BillingDetails,
    ConfirmationResult,
    PaymentAuthorization,
    PaymentMethod,
    PreApproval,
)


class RedirectAdapter(PaymentMethodAdapter):
    """PSP-confirmed rail that needs name, email, billing address and a return URL."""

    def validate(self, billing: BillingDetails) -> dict[str, str]:
        return {**name_errors(billing), **email_errors(billing), **address_errors(billing)}

    async def _confirm(self, auth: Optional[PaymentAuthorization], billing: BillingDetails) -> dict[str, Any]:
        auth = self._require_auth(auth)
        return await self._psp.confirm_authorization(  # type: ignore[union-attr]
            auth.id,
            self.method.psp_method_types[0],
            billing.to_psp(),
            return_url=self._return_url,
        )


class PreApprovedAdapter(RedirectAdapter):
    provider_url: str = ""

    def validate(self, billing: BillingDetails) -> dict[str, str]:
        errors = super().validate(billing)
        if billing.pre_approval is PreApproval.DECLINED:
            errors["pre_approval"] = f"{self.method.label} did not approve this purchase"
        elif billing.pre_approval is not PreApproval.APPROVED:
            errors["pre_approval"] = f"Please confirm you are pre-approved with {self.method.label}"
        return errors

    def validation_failure(self, billing: BillingDetails, errors: dict[str, str]) -> ConfirmationResult:
        declined = billing.pre_approval is PreApproval.DECLINED
        return ConfirmationResult.failure(
            ErrorClass.VALIDATION,
            f"Visit {self.method.label} to get pre-approved before paying."
            if declined else "Please complete all required fields.",
            error_code="pre_approval_declined" if declined else None,
            field_errors=errors,
            redirect_url=self.provider_url if declined else None,
        )


class KlarnaAdapter(PreApprovedAdapter):
    method = PaymentMethod.KLARNA
    provider_url = "https://www.klarna.com/us/"


class AffirmAdapter(PreApprovedAdapter):
    method = PaymentMethod.AFFIRM
    provider_url = "https://www.affirm.com/"


class AfterpayAdapter(RedirectAdapter):
    method = PaymentMethod.AFTERPAY
