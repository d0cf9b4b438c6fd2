"""Unit tests for payment method adapters."""

import asyncio
from datetime import datetime, timezone

import pytest
from conftest import FakePsp, full_billing

from bookpay.adapters.bnpl import AffirmAdapter, AfterpayAdapter, KlarnaAdapter
from bookpay.adapters.card import CardAdapter
from bookpay.adapters.cherry import CHERRY_PENDING_ID, CherryAdapter
from bookpay.adapters.registry import ADAPTER_CLASSES, adapter_for, build_adapters
from bookpay.errors import ErrorClass, NetworkError, TerminalPaymentError, ValidationError
from bookpay.models.payment import Address, BillingDetails, PaymentAuthorization, PaymentMethod, PreApproval


def make_auth(method_types=("card",)) -> PaymentAuthorization:
    return PaymentAuthorization(
        id="pi_1",
        handle="pi_1_secret",
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        amount_cents=10000,
        method_types=list(method_types),
    )


def ready() -> asyncio.Event:
    event = asyncio.Event()
    event.set()
    return event


class TestRegistry:
    def test_every_method_has_an_adapter(self):
        assert set(ADAPTER_CLASSES) == set(PaymentMethod)
        assert set(build_adapters()) == set(PaymentMethod)

    def test_adapter_for(self):
        assert isinstance(adapter_for("card"), CardAdapter)
        assert isinstance(adapter_for(PaymentMethod.AFTERPAY), AfterpayAdapter)

    def test_unknown_method(self):
        with pytest.raises(ValidationError):
            adapter_for("paypal")


class TestCardAdapter:
    def test_validate_requires_name_address_and_card(self):
        errors = CardAdapter().validate(BillingDetails())
        assert set(errors) == {"name", "address.line1", "address.city", "address.state", "address.postal_code", "card"}

    def test_email_not_required(self):
        assert CardAdapter().validate(full_billing(email="")) == {}

    @pytest.mark.asyncio
    async def test_confirm(self):
        psp = FakePsp()
        adapter = CardAdapter(psp=psp)
        result = await adapter.confirm(make_auth(), full_billing(), ready())
        assert result.success
        assert result.status == "succeeded"
        assert result.provider_payment_id == "pi_1"
        assert psp.confirmed[0]["payment_method_data"] == {"card": {"token": "tok_visa"}}
        assert psp.confirmed[0]["return_url"] is None

    @pytest.mark.asyncio
    async def test_decline_comes_back_as_data(self):
        psp = FakePsp([TerminalPaymentError("Your card was declined.", code="card_declined")])
        adapter = CardAdapter(psp=psp)
        result = await adapter.confirm(make_auth(), full_billing(), ready())
        assert not result.success
        assert result.error_class is ErrorClass.TERMINAL
        assert result.message == "Your card was declined."
        assert result.error_code == "card_declined"

    @pytest.mark.asyncio
    async def test_network_error_comes_back_as_data(self):
        adapter = CardAdapter(psp=FakePsp([NetworkError("reset")]))
        result = await adapter.confirm(make_auth(), full_billing(), ready())
        assert result.error_class is ErrorClass.NETWORK

    @pytest.mark.asyncio
    async def test_unclear_status(self):
        adapter = CardAdapter(psp=FakePsp(["processing_weird"]))
        result = await adapter.confirm(make_auth(), full_billing(), ready())
        assert not result.success
        assert result.error_class is ErrorClass.TERMINAL
        assert result.message == "Payment completed but status is unclear. Please contact support."

    @pytest.mark.asyncio
    async def test_missing_authorization(self):
        adapter = CardAdapter(psp=FakePsp())
        result = await adapter.confirm(None, full_billing(), ready())
        assert result.error_class is ErrorClass.AUTHORIZATION_EXPIRED

    @pytest.mark.asyncio
    async def test_waits_for_widget(self):
        psp = FakePsp()
        adapter = CardAdapter(psp=psp, widget_ready_timeout=0.01)
        result = await adapter.confirm(make_auth(), full_billing())
        assert result.error_code == "widget_not_ready"
        assert result.error_class is ErrorClass.NETWORK
        assert psp.confirmed == []

    @pytest.mark.asyncio
    async def test_readiness_is_per_checkout(self):
        psp = FakePsp()
        adapter = CardAdapter(psp=psp, widget_ready_timeout=0.01)
        first = await adapter.confirm(make_auth(), full_billing(), ready())
        second = await adapter.confirm(make_auth(), full_billing(), asyncio.Event())
        assert first.success
        assert second.error_code == "widget_not_ready"
        assert len(psp.confirmed) == 1


class TestPreApprovedAdapters:
    @pytest.mark.parametrize("cls", [KlarnaAdapter, AffirmAdapter])
    def test_requires_email_and_pre_approval(self, cls):
        errors = cls().validate(full_billing(email="", pre_approval=PreApproval.UNKNOWN))
        assert set(errors) == {"email", "pre_approval"}

    def test_invalid_email(self):
        assert KlarnaAdapter().validate(full_billing(email="dana@nowhere"))["email"] == "Email address is invalid"

    @pytest.mark.asyncio
    async def test_declined_routes_to_provider(self):
        psp = FakePsp()
        adapter = AffirmAdapter(psp=psp)
        result = await adapter.confirm(make_auth(["affirm"]), full_billing(pre_approval=PreApproval.DECLINED), ready())
        assert result.error_class is ErrorClass.VALIDATION
        assert result.error_code == "pre_approval_declined"
        assert result.redirect_url == "https://www.affirm.com/"
        assert psp.confirmed == []

    @pytest.mark.asyncio
    async def test_approved_confirms_with_return_url(self):
        psp = FakePsp(["requires_action"])
        adapter = KlarnaAdapter(psp=psp, return_url="https://shop.example/return")
        result = await adapter.confirm(make_auth(["klarna"]), full_billing(), ready())
        assert result.success
        assert result.status == "requires_action"
        assert psp.confirmed[0]["method_type"] == "klarna"
        assert psp.confirmed[0]["return_url"] == "https://shop.example/return"


class TestAfterpayAdapter:
    def test_no_pre_approval_gate(self):
        assert AfterpayAdapter().validate(full_billing(pre_approval=PreApproval.UNKNOWN)) == {}

    def test_requires_address(self):
        billing = full_billing(address=Address(line1="1 Main St", city="Austin", state="TX"))
        assert AfterpayAdapter().validate(billing) == {"address.postal_code": "ZIP code is required"}

    @pytest.mark.asyncio
    async def test_uses_afterpay_clearpay(self):
        psp = FakePsp()
        adapter = AfterpayAdapter(psp=psp)
        await adapter.confirm(make_auth(["afterpay_clearpay"]), full_billing(), ready())
        assert psp.confirmed[0]["method_type"] == "afterpay_clearpay"


class TestCherryAdapter:
    @pytest.mark.asyncio
    async def test_opens_checkout_without_psp(self):
        opened = []
        adapter = CherryAdapter(checkout_url="https://pay.withcherry.com/shop", opener=opened.append)
        result = await adapter.confirm(None, BillingDetails())
        assert opened == ["https://pay.withcherry.com/shop"]
        assert result.success
        assert result.status == "requires_action"
        assert result.provider_payment_id == CHERRY_PENDING_ID
        assert result.provisional
        assert result.redirect_url == "https://pay.withcherry.com/shop"

    def test_no_widget(self):
        assert not CherryAdapter(opener=lambda url: None).needs_widget
