"""
BookPay / AsyncBookPay — main entry points wiring pricing, authorization and confirmation together.
"""

import asyncio
from datetime import timedelta
from typing import Any, Callable, Optional

import httpx

from bookpay.adapters.base import PaymentMethodAdapter
from bookpay.adapters.registry import build_adapters
from bookpay.authorization import AuthorizationManager, utcnow
from bookpay.booking import BookingCollaborator, BookingFinalizer, BookingRequest
from bookpay.config import Settings
from bookpay.discounts import DiscountLedger, apply_discounts
from bookpay.models.discount import Coupon, GiftCard
from bookpay.models.payment import BillingDetails, PaymentMethod
from bookpay.models.pricing import AnyPricingResult
from bookpay.money import MoneyLike
from bookpay.orchestrator import CheckoutContext, CheckoutOutcome, ConfirmationOrchestrator
from bookpay.pricing import PricingEngine
from bookpay.psp import PspClient
from bookpay.transport.http import HttpClient


class AsyncBookPay:
    """Async checkout client (primary)."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http: Optional[HttpClient] = None,
        booking: Optional[BookingCollaborator] = None,
        ledger: Optional[DiscountLedger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], Any] = utcnow,
        opener: Optional[Callable[[str], Any]] = None,
    ):
        self.settings = settings or Settings.load()
        self.ledger = ledger
        self.pricing = PricingEngine.from_settings(self.settings)

        self.http = http or HttpClient(
            base_url=self.settings.psp_base_url,
            token=self.settings.psp_secret_key,
            transport=transport,
        )
        self.psp = PspClient(self.http, currency=self.settings.currency)
        self.authorizations = AuthorizationManager(
            self.psp,
            ttl=timedelta(minutes=self.settings.authorization_ttl_minutes),
            clock=clock,
            currency=self.settings.currency,
        )
        self.adapters: dict[PaymentMethod, PaymentMethodAdapter] = build_adapters(
            psp=self.psp,
            return_url=self.settings.return_url,
            cherry_checkout_url=self.settings.cherry_checkout_url,
            opener=opener,
        )
        finalizer = BookingFinalizer(booking, ledger) if booking is not None else None
        self.orchestrator = ConfirmationOrchestrator(self.authorizations, self.adapters, finalizer)

    def quote(
        self,
        service_price: MoneyLike,
        method: PaymentMethod = PaymentMethod.CARD,
        *,
        coupon: Optional[Coupon] = None,
        gift_card: Optional[GiftCard] = None,
        deposit_reduction: MoneyLike = 0,
    ) -> AnyPricingResult:
        """Quote a service with already-validated coupon / gift card applied."""
        discounts = apply_discounts(service_price, coupon, gift_card)
        return self.pricing.quote(
            service_price,
            method,
            coupon_discount=discounts.coupon_discount,
            gift_card_discount=discounts.gift_card_discount,
            deposit_reduction=deposit_reduction,
            coupon_class=discounts.coupon_class,
        )

    def new_checkout(
        self,
        pricing: AnyPricingResult,
        billing: Optional[BillingDetails] = None,
        booking: Optional[BookingRequest] = None,
    ) -> CheckoutContext:
        return self.orchestrator.new_context(pricing, billing=billing, booking=booking)

    def mark_widget_ready(self, ctx: CheckoutContext) -> None:
        """Forward the UI's "payment widget loaded" signal to one checkout."""
        ctx.mark_widget_ready()

    async def submit(self, ctx: CheckoutContext) -> CheckoutOutcome:
        return await self.orchestrator.submit(ctx)

    async def close(self) -> None:
        await self.http.close()


class BookPay:
    """Sync wrapper around AsyncBookPay. Runs the event loop internally."""

    def __init__(self, **kwargs: Any):
        self._loop = asyncio.new_event_loop()
        self._async = AsyncBookPay(**kwargs)

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def settings(self) -> Settings:
        return self._async.settings

    def quote(self, service_price: MoneyLike, method: PaymentMethod = PaymentMethod.CARD, **kwargs: Any) -> AnyPricingResult:
        return self._async.quote(service_price, method, **kwargs)

    def new_checkout(self, pricing: AnyPricingResult, **kwargs: Any) -> CheckoutContext:
        return self._async.new_checkout(pricing, **kwargs)

    def mark_widget_ready(self, ctx: CheckoutContext) -> None:
        self._async.mark_widget_ready(ctx)

    def submit(self, ctx: CheckoutContext) -> CheckoutOutcome:
        return self._run(self._async.submit(ctx))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
