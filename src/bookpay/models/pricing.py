"""
Pricing models — the inputs to a quote and the three shapes a quote can take.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from bookpay.models.payment import PaymentMethod
from bookpay.money import ZERO, to_cents

Money = Decimal
NonNegativeMoney = Annotated[Decimal, Field(ge=0)]


class CouponClass(str, Enum):
    NONE = "none"
    STANDARD = "standard"
    FREE = "free"
    DEFERRED = "deferred"


class DepositPolicy(BaseModel):
    """Either a percentage of the subtotal or a fixed amount, never both."""
    enabled: bool = True
    percent: Optional[Decimal] = Field(default=Decimal("33.33"), ge=0, le=100)
    fixed: Optional[Decimal] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _one_rule(self) -> "DepositPolicy":
        if self.fixed is not None:
            self.percent = None
        elif self.percent is None and self.enabled:
            raise ValueError("an enabled deposit policy needs a percent or a fixed amount")
        return self


class PricingInput(BaseModel):
    service_price: Money = Field(ge=0)
    tax_rate_percent: Decimal = Field(default=ZERO, ge=0)
    deposit_policy: DepositPolicy = Field(default_factory=DepositPolicy)
    payment_method: PaymentMethod = PaymentMethod.CARD
    coupon_discount: NonNegativeMoney = ZERO
    gift_card_discount: NonNegativeMoney = ZERO
    deposit_reduction: NonNegativeMoney = ZERO
    coupon_class: CouponClass = CouponClass.NONE
    deferred_deposit: Money = Field(default=Decimal("200.00"), ge=0)
    full_payment_threshold: Money = Field(default=Decimal("200.00"), ge=0)


class PricingResult(BaseModel):
    """A standard quote: something is collected now, possibly a deposit."""
    kind: Literal["standard"] = "standard"
    payment_method: PaymentMethod
    subtotal: Money
    tax: Money
    deposit: Money
    fee: Money
    total: Money
    remaining: Money
    charge_basis: Money
    forced_full: bool = False

    @property
    def amount_due_now(self) -> Decimal:
        return self.deposit + self.fee

    @property
    def amount_due_now_cents(self) -> int:
        return to_cents(self.amount_due_now)

    @property
    def collects_payment(self) -> bool:
        return self.amount_due_now > 0


class FreeResult(PricingResult):
    """Nothing owed: zero subtotal or a 100%-off coupon."""
    kind: Literal["free"] = "free"  # type: ignore[assignment]
    subtotal: Money = ZERO
    tax: Money = ZERO
    deposit: Money = ZERO
    fee: Money = ZERO
    total: Money = ZERO
    remaining: Money = ZERO
    charge_basis: Money = ZERO
    forced_full: bool = True


class DeferredResult(PricingResult):
    """Pay-after-service coupon: the split is recorded but nothing is charged now."""
    kind: Literal["deferred"] = "deferred"  # type: ignore[assignment]
    fee: Money = ZERO
    charge_basis: Money = ZERO

    @property
    def amount_due_now(self) -> Decimal:
        return ZERO


AnyPricingResult = Union[FreeResult, DeferredResult, PricingResult]
