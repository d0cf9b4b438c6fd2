"""
Booking finalization — everything that happens after a payment is accepted.

Each step runs independently: a failure is logged and reported, never rolled
back into the payment, which has already been captured.
"""

import logging
from decimal import Decimal
from typing import Any, Optional, Protocol

from pydantic import BaseModel, Field

from bookpay.discounts import DiscountLedger
from bookpay.models.discount import AppliedDiscounts
from bookpay.models.payment import ConfirmationResult, PaymentMethod
from bookpay.models.pricing import AnyPricingResult
from bookpay.money import to_cents

logger = logging.getLogger(__name__)


class BookingCollaborator(Protocol):
    async def create_appointment(self, data: dict[str, Any]) -> str: ...

    async def book_time_slot(self, artist_id: str, date: str, time: str, appointment_id: str) -> None: ...


class BookingRequest(BaseModel):
    client_id: str
    client_name: str = ""
    client_email: str = ""
    service_id: str
    service_name: str = ""
    artist_id: str
    date: str
    time: str
    special_requests: str = ""
    discounts: AppliedDiscounts = Field(default_factory=AppliedDiscounts)


class FinalizationReport(BaseModel):
    appointment_id: Optional[str] = None
    errors: dict[str, str] = {}

    @property
    def ok(self) -> bool:
        return not self.errors


def payment_status(pricing: AnyPricingResult, result: ConfirmationResult) -> str:
    if result.provisional:
        return "pending_external"
    if pricing.kind == "free":
        return "no_charge"
    if pricing.kind == "deferred" or not pricing.collects_payment:
        return "pending"
    if pricing.remaining > 0:
        return "deposit_paid"
    return "paid_in_full"


def appointment_data(request: BookingRequest, pricing: AnyPricingResult, result: ConfirmationResult) -> dict[str, Any]:
    def money(value: Decimal) -> str:
        return str(value)

    return {
        "client_id": request.client_id,
        "client_name": request.client_name,
        "client_email": request.client_email,
        "service_id": request.service_id,
        "service_name": request.service_name,
        "artist_id": request.artist_id,
        "scheduled_date": request.date,
        "scheduled_time": request.time,
        "status": "confirmed",
        "special_requests": request.special_requests,
        "payment_method": PaymentMethod(pricing.payment_method).value,
        "payment_status": payment_status(pricing, result),
        "payment_intent_id": result.provider_payment_id or "",
        "total_amount": money(pricing.total),
        "deposit_amount": money(pricing.deposit),
        "remaining_amount": money(pricing.remaining),
        "processing_fee": money(pricing.fee),
        "coupon_id": request.discounts.coupon_id,
        "coupon_discount": money(request.discounts.coupon_discount),
        "gift_card_id": request.discounts.gift_card_id,
        "gift_card_amount": money(request.discounts.gift_card_discount),
    }


class BookingFinalizer:
    def __init__(self, booking: BookingCollaborator, ledger: Optional[DiscountLedger] = None):
        self._booking = booking
        self._ledger = ledger

    async def finalize(
        self,
        request: BookingRequest,
        pricing: AnyPricingResult,
        result: ConfirmationResult,
    ) -> FinalizationReport:
        report = FinalizationReport()
        try:
            report.appointment_id = await self._booking.create_appointment(appointment_data(request, pricing, result))
            logger.info("appointment %s created for %s", report.appointment_id, request.client_id)
        except Exception as e:
            logger.warning("appointment creation failed after payment %s: %s", result.provider_payment_id, e)
            report.errors["appointment"] = str(e)

        if report.appointment_id:
            try:
                await self._booking.book_time_slot(request.artist_id, request.date, request.time, report.appointment_id)
            except Exception as e:
                logger.warning("slot %s %s for %s not booked: %s", request.date, request.time, request.artist_id, e)
                report.errors["time_slot"] = str(e)

        discounts = request.discounts
        if self._ledger is not None and discounts.coupon_id:
            try:
                await self._ledger.consume_coupon(discounts.coupon_id)
            except Exception as e:
                logger.warning("coupon %s not consumed: %s", discounts.coupon_id, e)
                report.errors["coupon"] = str(e)
        if self._ledger is not None and discounts.gift_card_id and discounts.gift_card_discount > 0:
            try:
                await self._ledger.consume_gift_card(discounts.gift_card_id, to_cents(discounts.gift_card_discount))
            except Exception as e:
                logger.warning("gift card %s not debited: %s", discounts.gift_card_id, e)
                report.errors["gift_card"] = str(e)
        return report
