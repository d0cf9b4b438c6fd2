"""
Cherry rail — financing handled entirely on Cherry's site.

Confirming opens Cherry's checkout in a new browser tab and immediately reports
a provisional "requires_action" result with a fixed sentinel id. Settlement
happens out-of-band and is not reconciled here; downstream code must treat the
result as unverified (see ConfirmationResult.provisional).
"""

import asyncio
import logging
import webbrowser
from typing import Any, Callable, Optional

from bookpay.adapters.base import PaymentMethodAdapter
from bookpay.models.payment import (
    BillingDetails,
    ConfirmationResult,
    PaymentAuthorization,
    PaymentMethod,
)

logger = logging.getLogger(__name__)

CHERRY_PENDING_ID = "cherry_pending"
DEFAULT_CHERRY_CHECKOUT_URL = "https://pay.withcherry.com/"


class CherryAdapter(PaymentMethodAdapter):
    method = PaymentMethod.CHERRY
    needs_widget = False

    def __init__(
        self,
        checkout_url: str = DEFAULT_CHERRY_CHECKOUT_URL,
        opener: Callable[[str], Any] = webbrowser.open_new_tab,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self._checkout_url = checkout_url
        self._opener = opener

    def validate(self, billing: BillingDetails) -> dict[str, str]:
        return {}

    async def _confirm(self, auth: Optional[PaymentAuthorization], billing: BillingDetails) -> dict[str, Any]:
        await asyncio.to_thread(self._opener, self._checkout_url)
        logger.info("cherry checkout opened at %s", self._checkout_url)
        return {"id": CHERRY_PENDING_ID, "status": "requires_action"}

    def _interpret(self, data: dict[str, Any]) -> ConfirmationResult:
        result = super()._interpret(data)
        result.provisional = True
        result.redirect_url = self._checkout_url
        return result
