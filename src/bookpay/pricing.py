"""
Pricing engine — turns a service price, discounts, tax and deposit policy into a charge breakdown.

Pure and deterministic. Every intermediate amount is rounded half-up to cents so
that recomputing as discounts or the payment method toggle never drifts.

Fee model:
- Cherry charges a flat 1.9% of the charge basis.
- Every other rail is grossed up: the fee is chosen so that after the processor
  takes 2.9% + $0.30 of (basis + fee), the merchant still nets the full basis.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from bookpay.errors import ValidationError
from bookpay.models.payment import PaymentMethod
from bookpay.models.pricing import (
    AnyPricingResult,
    CouponClass,
    DeferredResult,
    DepositPolicy,
    FreeResult,
    PricingInput,
    PricingResult,
)
from bookpay.money import ZERO, MoneyLike, clamp0, round2, to_money

logger = logging.getLogger(__name__)

PROCESSOR_PERCENTAGE_FEE = Decimal("0.029")
PROCESSOR_FIXED_FEE = Decimal("0.30")
CHERRY_PERCENTAGE_FEE = Decimal("0.019")
CHERRY_FIXED_FEE = ZERO

DEFAULT_FULL_PAYMENT_THRESHOLD = Decimal("200.00")


def processing_fee(charge_basis: MoneyLike, method: PaymentMethod) -> Decimal:
    """Fee added on top of the charge basis for the given rail."""
    basis = round2(charge_basis)
    if basis <= 0:
        return ZERO
    if method is PaymentMethod.CHERRY:
        return round2(basis * CHERRY_PERCENTAGE_FEE + CHERRY_FIXED_FEE)
    charged = (basis + PROCESSOR_FIXED_FEE) / (1 - PROCESSOR_PERCENTAGE_FEE)
    return round2(charged - basis)


def fee_explanation(method: PaymentMethod = PaymentMethod.CARD) -> str:
    if method is PaymentMethod.CHERRY:
        return f"Cherry processing fee ({CHERRY_PERCENTAGE_FEE * 100:.1f}%)"
    return f"Processing fee ({PROCESSOR_PERCENTAGE_FEE * 100:.1f}% + ${PROCESSOR_FIXED_FEE:.2f})"


def policy_deposit(subtotal: Decimal, policy: DepositPolicy) -> Decimal:
    if policy.fixed is not None:
        return round2(policy.fixed)
    return round2(subtotal * (policy.percent or ZERO) / 100)


def is_full_payment_forced(
    amount_with_tax: Decimal,
    method: PaymentMethod,
    policy: DepositPolicy,
    threshold: Decimal = DEFAULT_FULL_PAYMENT_THRESHOLD,
) -> bool:
    """Deposits only exist on the card rail, with deposits enabled, at or above the threshold."""
    return amount_with_tax < threshold or method is not PaymentMethod.CARD or not policy.enabled


def calculate(data: PricingInput) -> AnyPricingResult:
    method = data.payment_method
    subtotal = round2(clamp0(
        round2(data.service_price) - round2(data.coupon_discount) - round2(data.gift_card_discount)
    ))

    if subtotal == 0 or data.coupon_class is CouponClass.FREE:
        return FreeResult(payment_method=method)

    tax = round2(subtotal * data.tax_rate_percent / 100)
    with_tax = round2(subtotal + tax)

    if data.coupon_class is CouponClass.DEFERRED:
        deposit = min(round2(data.deferred_deposit), with_tax)
        return DeferredResult(
            payment_method=method,
            subtotal=subtotal,
            tax=tax,
            deposit=deposit,
            total=with_tax,
            remaining=round2(with_tax - deposit),
            forced_full=False,
        )

    forced_full = is_full_payment_forced(with_tax, method, data.deposit_policy, data.full_payment_threshold)
    if forced_full:
        deposit = with_tax
        remaining = ZERO
    else:
        deposit = clamp0(policy_deposit(subtotal, data.deposit_policy) - round2(data.deposit_reduction))
        deposit = min(round2(deposit), with_tax)
        remaining = round2(clamp0(with_tax - deposit))

    charge_basis = with_tax if (forced_full or method.is_pay_later) else deposit
    fee = processing_fee(charge_basis, method)

    return PricingResult(
        payment_method=method,
        subtotal=subtotal,
        tax=tax,
        deposit=deposit,
        fee=fee,
        total=round2(with_tax + fee),
        remaining=remaining,
        charge_basis=charge_basis,
        forced_full=forced_full,
    )


class PricingEngine:
    """Builds pricing inputs from business settings and computes quotes.

    The engine holds only configuration; each quote is computed from scratch.
    """

    def __init__(
        self,
        tax_rate_percent: MoneyLike = Decimal("7.75"),
        deposit_policy: Optional[DepositPolicy] = None,
        full_payment_threshold: MoneyLike = DEFAULT_FULL_PAYMENT_THRESHOLD,
        deferred_deposit: MoneyLike = Decimal("200.00"),
    ):
        self.tax_rate_percent = to_money(tax_rate_percent)
        self.deposit_policy = deposit_policy or DepositPolicy()
        self.full_payment_threshold = to_money(full_payment_threshold)
        self.deferred_deposit = to_money(deferred_deposit)

    @classmethod
    def from_settings(cls, settings) -> "PricingEngine":
        return cls(
            tax_rate_percent=settings.tax_rate_percent,
            deposit_policy=settings.deposit_policy(),
            full_payment_threshold=settings.full_payment_threshold,
            deferred_deposit=settings.deferred_deposit,
        )

    def compute(self, data: PricingInput) -> AnyPricingResult:
        return calculate(data)

    def quote(
        self,
        service_price: MoneyLike,
        method: PaymentMethod = PaymentMethod.CARD,
        *,
        coupon_discount: MoneyLike = 0,
        gift_card_discount: MoneyLike = 0,
        deposit_reduction: MoneyLike = 0,
        coupon_class: CouponClass = CouponClass.NONE,
        tax_rate_percent: Optional[MoneyLike] = None,
    ) -> AnyPricingResult:
        """Quote a service price for one rail using the configured tax and deposit policy."""
        try:
            data = PricingInput(
                service_price=to_money(service_price),
                tax_rate_percent=to_money(tax_rate_percent) if tax_rate_percent is not None else self.tax_rate_percent,
                deposit_policy=self.deposit_policy,
                payment_method=PaymentMethod(method),
                coupon_discount=to_money(coupon_discount),
                gift_card_discount=to_money(gift_card_discount),
                deposit_reduction=to_money(deposit_reduction),
                coupon_class=CouponClass(coupon_class),
                deferred_deposit=self.deferred_deposit,
                full_payment_threshold=self.full_payment_threshold,
            )
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid pricing input",
                details={".".join(str(p) for p in err["loc"]): err["msg"] for err in e.errors()},
            )
        except (ValueError, InvalidOperation) as e:
            raise ValidationError(f"Invalid pricing input: {e}")
        result = self.compute(data)
        logger.debug("quote %s via %s -> %s", service_price, data.payment_method.value, result.kind)
        return result
