"""
Confirmation orchestrator — drives one checkout submission to a terminal state.

States:
    idle -> validating -> ensuring_authorization -> confirming
         -> succeeded | failed
         -> retrying -> succeeded | failed

The only automatic retry is a single one after the PSP reports the
authorization expired; it recreates the authorization and re-invokes the same
adapter. Everything else fails immediately.

All session state lives on a CheckoutContext the caller owns. The orchestrator
itself is stateless and can serve any number of contexts.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from bookpay.adapters.base import PaymentMethodAdapter
from bookpay.authorization import AuthorizationManager
from bookpay.booking import BookingFinalizer, BookingRequest, FinalizationReport
from bookpay.errors import BookPayError, ErrorClass
from bookpay.models.payment import (
    AuthorizationStatus,
    BillingDetails,
    ConfirmationResult,
    PaymentAuthorization,
    PaymentMethod,
)
from bookpay.models.pricing import AnyPricingResult

logger = logging.getLogger(__name__)

NETWORK_MESSAGE = "Network error. Please check your connection and try again."
SESSION_EXPIRED_MESSAGE = "Your payment session expired. Please try again."
IN_FLIGHT_MESSAGE = "A payment is already being processed."


class CheckoutState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ENSURING_AUTHORIZATION = "ensuring_authorization"
    CONFIRMING = "confirming"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CheckoutOutcome(BaseModel):
    state: CheckoutState
    accepted: bool = True
    result: Optional[ConfirmationResult] = None
    message: Optional[str] = None
    confirm_attempts: int = 0
    finalization: Optional[FinalizationReport] = None

    @property
    def succeeded(self) -> bool:
        return self.state is CheckoutState.SUCCEEDED


class CheckoutContext:
    """Request-scoped checkout state: one live authorization and one in-flight flag.

    Any change to the amount due or the payment rail retires the live
    authorization. After close() late completions leave the context untouched.
    """

    def __init__(
        self,
        pricing: AnyPricingResult,
        billing: Optional[BillingDetails] = None,
        booking: Optional[BookingRequest] = None,
        manager: Optional[AuthorizationManager] = None,
    ):
        self.pricing = pricing
        self.billing = billing or BillingDetails()
        self.booking = booking
        self.authorization: Optional[PaymentAuthorization] = None
        self.in_flight = False
        self.closed = False
        self.state = CheckoutState.IDLE
        self.history: list[CheckoutState] = [CheckoutState.IDLE]
        self.widget_ready = asyncio.Event()
        self._manager = manager

    @property
    def method(self) -> PaymentMethod:
        return PaymentMethod(self.pricing.payment_method)

    def mark_widget_ready(self) -> None:
        """Called by the UI once the embedded payment widget for the current rail reports ready."""
        self.widget_ready.set()

    def invalidate_authorization(self) -> None:
        if self.authorization is None:
            return
        if self._manager is not None:
            self._manager.invalidate(self.authorization)
        elif self.authorization.status is AuthorizationStatus.PENDING:
            self.authorization.status = AuthorizationStatus.EXPIRED
        self.authorization = None

    def update_pricing(self, pricing: AnyPricingResult) -> None:
        """Swap in a recomputed quote (discount applied or removed, deposit reduced, rail switched)."""
        method_changed = pricing.payment_method != self.pricing.payment_method
        changed = method_changed or pricing.amount_due_now_cents != self.pricing.amount_due_now_cents
        self.pricing = pricing
        if method_changed:
            # the new rail renders its own widget
            self.widget_ready.clear()
        if changed:
            self.invalidate_authorization()

    def select_method(self, pricing: AnyPricingResult) -> None:
        """Switch rail. The quote must already be recomputed for the new rail."""
        self.update_pricing(pricing)

    def close(self) -> None:
        self.closed = True

    def enter(self, state: CheckoutState) -> None:
        if self.closed:
            return
        self.state = state
        self.history.append(state)


class ConfirmationOrchestrator:
    def __init__(
        self,
        manager: AuthorizationManager,
        adapters: dict[PaymentMethod, PaymentMethodAdapter],
        finalizer: Optional[BookingFinalizer] = None,
    ):
        missing = set(PaymentMethod) - set(adapters)
        if missing:
            raise ValueError(f"No adapter for: {sorted(m.value for m in missing)}")
        self._manager = manager
        self._adapters = adapters
        self._finalizer = finalizer

    def new_context(
        self,
        pricing: AnyPricingResult,
        billing: Optional[BillingDetails] = None,
        booking: Optional[BookingRequest] = None,
    ) -> CheckoutContext:
        return CheckoutContext(pricing, billing=billing, booking=booking, manager=self._manager)

    def adapter(self, method: PaymentMethod) -> PaymentMethodAdapter:
        return self._adapters[PaymentMethod(method)]

    async def submit(self, ctx: CheckoutContext) -> CheckoutOutcome:
        if ctx.in_flight:
            logger.info("submit ignored: a submission is already in flight")
            return CheckoutOutcome(state=ctx.state, accepted=False, message=IN_FLIGHT_MESSAGE)

        ctx.in_flight = True
        try:
            return await self._run(ctx)
        except Exception as e:
            logger.error("unexpected error during %s checkout: %s", ctx.method.value, e, exc_info=True)
            return self._fail(ctx, unexpected_failure(), 0)
        finally:
            ctx.in_flight = False

    async def _run(self, ctx: CheckoutContext) -> CheckoutOutcome:
        ctx.enter(CheckoutState.VALIDATING)
        pricing = ctx.pricing
        adapter = self.adapter(ctx.method)

        if not pricing.collects_payment:
            logger.info("nothing due now (%s quote), skipping payment", pricing.kind)
            return await self._succeed(ctx, ConfirmationResult(success=True, status="no_payment_due"), 0)

        errors = adapter.validate(ctx.billing)
        if errors:
            return self._fail(ctx, adapter.validation_failure(ctx.billing, errors), 0)

        result, confirmed = await self._attempt(ctx, adapter, retrying=False)
        attempts = 1 if confirmed else 0
        if confirmed and result.error_class is ErrorClass.AUTHORIZATION_EXPIRED:
            logger.warning("authorization expired during %s confirmation, retrying once", ctx.method.value)
            ctx.enter(CheckoutState.RETRYING)
            result, confirmed = await self._attempt(ctx, adapter, retrying=True)
            if confirmed:
                attempts += 1
            if result.error_class is ErrorClass.AUTHORIZATION_EXPIRED:
                result = result.model_copy(update={"message": SESSION_EXPIRED_MESSAGE})

        if result.success:
            return await self._succeed(ctx, result, attempts)
        return self._fail(ctx, result, attempts)

    async def _attempt(
        self,
        ctx: CheckoutContext,
        adapter: PaymentMethodAdapter,
        retrying: bool,
    ) -> tuple[ConfirmationResult, bool]:
        """One ensure-then-confirm pass. The flag says whether the adapter was reached."""
        auth: Optional[PaymentAuthorization] = None
        if ctx.method.requires_authorization:
            if not retrying:
                ctx.enter(CheckoutState.ENSURING_AUTHORIZATION)
            current = ctx.authorization
            if retrying:
                self._manager.invalidate(current)
            try:
                auth = await self._manager.ensure_fresh(
                    current, ctx.pricing.amount_due_now_cents, ctx.method.psp_method_types,
                )
            except BookPayError as e:
                # only a confirmation can report an expired handle
                error_class = ErrorClass.VALIDATION if e.error_class is ErrorClass.VALIDATION else ErrorClass.NETWORK
                logger.info("authorization for %s checkout not created: %s", ctx.method.value, e.message)
                return ConfirmationResult.failure(error_class, e.message, e.code), False
            if not ctx.closed:
                ctx.authorization = auth

        if not retrying:
            ctx.enter(CheckoutState.CONFIRMING)
        try:
            result = await adapter.confirm(auth, ctx.billing, ctx.widget_ready)
        except Exception as e:
            logger.error("%s adapter raised during confirmation: %s", ctx.method.value, e, exc_info=True)
            result = unexpected_failure()

        if auth is not None and not ctx.closed:
            if result.success:
                auth.status = AuthorizationStatus.CONFIRMED
            elif result.error_class is ErrorClass.AUTHORIZATION_EXPIRED:
                auth.status = AuthorizationStatus.EXPIRED
            elif result.error_class is ErrorClass.TERMINAL:
                auth.status = AuthorizationStatus.FAILED
        return result, True

    async def _succeed(self, ctx: CheckoutContext, result: ConfirmationResult, attempts: int) -> CheckoutOutcome:
        if ctx.closed:
            logger.warning("payment %s completed after the checkout was closed", result.provider_payment_id)
        ctx.enter(CheckoutState.SUCCEEDED)
        if result.provisional:
            logger.warning(
                "%s payment %s is provisional; settlement is not confirmed",
                ctx.method.value, result.provider_payment_id,
            )
        logger.info("checkout succeeded via %s (%s)", ctx.method.value, result.provider_payment_id)

        report = None
        if self._finalizer is not None and ctx.booking is not None:
            report = await self._finalizer.finalize(ctx.booking, ctx.pricing, result)
        return CheckoutOutcome(
            state=CheckoutState.SUCCEEDED,
            result=result,
            message=result.message,
            confirm_attempts=attempts,
            finalization=report,
        )

    def _fail(self, ctx: CheckoutContext, result: ConfirmationResult, attempts: int) -> CheckoutOutcome:
        ctx.enter(CheckoutState.FAILED)
        message = user_message(result)
        logger.info("checkout failed via %s: %s (%s)", ctx.method.value, message, result.error_code)
        return CheckoutOutcome(
            state=CheckoutState.FAILED,
            result=result,
            message=message,
            confirm_attempts=attempts,
        )


def user_message(result: ConfirmationResult) -> str:
    if result.error_class is ErrorClass.NETWORK:
        return NETWORK_MESSAGE
    if result.error_class is ErrorClass.AUTHORIZATION_EXPIRED:
        return SESSION_EXPIRED_MESSAGE
    return result.message or "Payment failed"


def unexpected_failure() -> ConfirmationResult:
    return ConfirmationResult.failure(ErrorClass.NETWORK, NETWORK_MESSAGE, error_code="unexpected")
