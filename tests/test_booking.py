"""Unit tests for post-payment booking finalization."""

from decimal import Decimal

import pytest
from conftest import FakeBooking

from bookpay.booking import BookingFinalizer, BookingRequest, appointment_data, payment_status
from bookpay.discounts import InMemoryDiscountLedger
from bookpay.models.discount import AppliedDiscounts, Coupon, CouponType, GiftCard
from bookpay.models.payment import ConfirmationResult, PaymentMethod
from bookpay.models.pricing import CouponClass
from bookpay.pricing import PricingEngine

ENGINE = PricingEngine(tax_rate_percent="7.75")
PAID = ConfirmationResult(success=True, status="succeeded", provider_payment_id="pi_1")


def request(**kwargs) -> BookingRequest:
    values = {"client_id": "u1", "service_id": "svc1", "artist_id": "a1", "date": "2024-05-02", "time": "14:00"}
    values.update(kwargs)
    return BookingRequest(**values)


class TestPaymentStatus:
    def test_paid_in_full(self):
        assert payment_status(ENGINE.quote(100), PAID) == "paid_in_full"

    def test_deposit_paid(self):
        assert payment_status(ENGINE.quote(600), PAID) == "deposit_paid"

    def test_deferred(self):
        assert payment_status(ENGINE.quote(600, coupon_class=CouponClass.DEFERRED), PAID) == "pending"

    def test_free_booking_has_no_charge(self):
        result = ConfirmationResult(success=True, status="no_payment_due")
        assert payment_status(ENGINE.quote(100, coupon_class=CouponClass.FREE), result) == "no_charge"

    def test_nothing_collected_is_pending(self):
        quote = ENGINE.quote(600, deposit_reduction="199.98")
        assert not quote.collects_payment
        result = ConfirmationResult(success=True, status="no_payment_due")
        assert payment_status(quote, result) == "pending"

    def test_provisional(self):
        result = PAID.model_copy(update={"provisional": True})
        assert payment_status(ENGINE.quote(500, PaymentMethod.CHERRY), result) == "pending_external"


class TestAppointmentData:
    def test_amounts(self):
        data = appointment_data(request(), ENGINE.quote(600), PAID)
        assert data["payment_method"] == "card"
        assert data["total_amount"] == "652.78"
        assert data["deposit_amount"] == "199.98"
        assert data["remaining_amount"] == "446.52"
        assert data["processing_fee"] == "6.28"
        assert data["scheduled_date"] == "2024-05-02"
        assert data["coupon_id"] is None


class TestFinalizer:
    @pytest.mark.asyncio
    async def test_consumes_discounts(self):
        coupon = Coupon(id="c1", code="TEN", type=CouponType.FIXED, value=Decimal("10"))
        card = GiftCard(id="g1", code="GIFT", balance=Decimal("50"))
        ledger = InMemoryDiscountLedger(coupons=[coupon], gift_cards=[card])
        discounts = AppliedDiscounts(coupon_discount=Decimal("10"), gift_card_discount=Decimal("20"),
                                     coupon_class=CouponClass.STANDARD, coupon_id="c1", gift_card_id="g1")

        report = await BookingFinalizer(FakeBooking(), ledger).finalize(
            request(discounts=discounts), ENGINE.quote(600, coupon_discount=10, gift_card_discount=20), PAID,
        )
        assert report.ok
        assert coupon.usage_count == 1
        assert card.balance == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_each_step_reports_independently(self):
        ledger = InMemoryDiscountLedger()
        discounts = AppliedDiscounts(coupon_id="missing")
        report = await BookingFinalizer(FakeBooking(fail_slot=True), ledger).finalize(
            request(discounts=discounts), ENGINE.quote(100), PAID,
        )
        assert report.appointment_id == "appt_1"
        assert set(report.errors) == {"time_slot", "coupon"}
        assert not report.ok
