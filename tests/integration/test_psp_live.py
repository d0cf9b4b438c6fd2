"""
Integration tests for bookpay — runs against a live payment gateway.

Requires environment variables:
  BOOKPAY_PSP_BASE_URL    — gateway exposing /v1/payment_intents (test mode)
  BOOKPAY_PSP_SECRET_KEY  — (optional) bearer token for the gateway

Run: BOOKPAY_INTEGRATION=1 pytest tests/integration/ -v
"""

import os

import pytest
from conftest import full_billing

from bookpay import AsyncBookPay, PaymentMethod, Settings
from bookpay.authorization import AuthorizationManager
from bookpay.errors import AuthorizationExpiredError
from bookpay.models.payment import AuthorizationStatus

SKIP = not os.environ.get("BOOKPAY_INTEGRATION")

pytestmark = pytest.mark.skipif(SKIP, reason="BOOKPAY_INTEGRATION not set")


def make_client() -> AsyncBookPay:
    return AsyncBookPay(settings=Settings.load())


class TestAuthorizationLifecycle:
    @pytest.mark.asyncio
    async def test_creates_authorization(self):
        client = make_client()
        auth = await client.authorizations.create(10775, ["card"])
        await client.close()
        assert auth.id
        assert auth.handle
        assert auth.status is AuthorizationStatus.PENDING

    @pytest.mark.asyncio
    async def test_pay_later_method_types(self):
        client = make_client()
        manager: AuthorizationManager = client.authorizations
        for method in (PaymentMethod.KLARNA, PaymentMethod.AFFIRM, PaymentMethod.AFTERPAY):
            auth = await manager.create(20000, method.psp_method_types)
            assert auth.method_types == method.psp_method_types
        await client.close()

    @pytest.mark.asyncio
    async def test_unknown_intent_is_expired(self):
        client = make_client()
        with pytest.raises(AuthorizationExpiredError):
            await client.psp.confirm_authorization("pi_does_not_exist", "card", {})
        await client.close()


class TestCheckout:
    @pytest.mark.asyncio
    async def test_card_checkout(self):
        client = make_client()
        ctx = client.new_checkout(client.quote(100, PaymentMethod.CARD), billing=full_billing())
        client.mark_widget_ready(ctx)
        outcome = await client.submit(ctx)
        await client.close()
        assert outcome.succeeded, outcome.message
