"""
Card rail — synchronous PSP confirmation, no redirect.
"""

from typing import Any, Optional

from bookpay.adapters.base import PaymentMethodAdapter, address_errors, name_errors
from bookpay.models.payment import BillingDetails, PaymentAuthorization, PaymentMethod


class CardAdapter(PaymentMethodAdapter):
    method = PaymentMethod.CARD

    def validate(self, billing: BillingDetails) -> dict[str, str]:
        errors = {**name_errors(billing), **address_errors(billing)}
        if not (billing.card_token or "").strip():
            errors["card"] = "Card details are required"
        return errors

    async def _confirm(self, auth: Optional[PaymentAuthorization], billing: BillingDetails) -> dict[str, Any]:
        auth = self._require_auth(auth)
        return await self._psp.confirm_authorization(  # type: ignore[union-attr]
            auth.id,
            "card",
            billing.to_psp(),
            payment_method_data={"card": {"token": billing.card_token}},
        )
