"""
Discount ledger — coupon and gift card validation and the discount amounts they yield.

The pricing engine never calls a ledger itself; it only consumes the discount
totals that apply_discounts() produces.
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol

from bookpay.errors import ValidationError
from bookpay.models.discount import (
    AppliedDiscounts,
    Coupon,
    CouponType,
    CouponValidation,
    GiftCard,
    GiftCardValidation,
)
from bookpay.models.pricing import CouponClass
from bookpay.money import ZERO, MoneyLike, clamp0, from_cents, round2, to_money

logger = logging.getLogger(__name__)


class DiscountLedger(Protocol):
    async def validate_coupon(self, code: str, service_id: Optional[str], amount: Decimal) -> CouponValidation: ...

    def calculate_discount(self, coupon: Coupon, amount: Decimal) -> Decimal: ...

    async def validate_gift_card(self, code: str, amount: Decimal) -> GiftCardValidation: ...

    async def consume_coupon(self, coupon_id: str) -> None: ...

    async def consume_gift_card(self, gift_card_id: str, amount_cents: int) -> None: ...


def _utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def check_coupon(
    coupon: Optional[Coupon],
    amount: MoneyLike,
    service_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CouponValidation:
    now = _utc(now or datetime.now(timezone.utc))
    if coupon is None:
        return CouponValidation(is_valid=False, error="Coupon not found")
    if not coupon.is_active:
        return CouponValidation(is_valid=False, error="Coupon is not active")
    if coupon.expires_at and _utc(coupon.expires_at) < now:
        return CouponValidation(is_valid=False, error="Coupon has expired")
    if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
        return CouponValidation(is_valid=False, error="Coupon usage limit exceeded")
    if coupon.min_order_amount and to_money(amount) < coupon.min_order_amount:
        return CouponValidation(is_valid=False, error="Order amount does not meet minimum requirement")
    if coupon.applicable_services and service_id and service_id not in coupon.applicable_services:
        return CouponValidation(is_valid=False, error="Coupon not applicable to selected service")
    return CouponValidation(is_valid=True, coupon=coupon)


def calculate_discount(coupon: Coupon, amount: MoneyLike) -> Decimal:
    amount = round2(amount)
    if coupon.type is CouponType.PERCENTAGE:
        discount = round2(amount * coupon.value / 100)
        if coupon.max_discount_amount is not None:
            discount = min(discount, round2(coupon.max_discount_amount))
    elif coupon.type is CouponType.FIXED:
        discount = min(round2(coupon.value), amount)
    elif coupon.type is CouponType.FREE_SERVICE:
        discount = amount
    elif coupon.type is CouponType.EXACT_AMOUNT:
        discount = min(round2(coupon.exact_amount or ZERO), amount)
    else:
        # pay-after-service changes when the money is collected, not how much
        discount = ZERO
    return min(clamp0(discount), amount)


def check_gift_card(
    gift_card: Optional[GiftCard],
    amount: MoneyLike,
    now: Optional[datetime] = None,
) -> GiftCardValidation:
    now = _utc(now or datetime.now(timezone.utc))
    if gift_card is None:
        return GiftCardValidation(is_valid=False, error="Gift card not found")
    if not gift_card.is_active:
        return GiftCardValidation(is_valid=False, error="Gift card is not active")
    if gift_card.expires_at and _utc(gift_card.expires_at) < now:
        return GiftCardValidation(is_valid=False, error="Gift card has expired")
    if gift_card.balance <= 0:
        return GiftCardValidation(is_valid=False, error="Gift card has no remaining balance")
    return GiftCardValidation(is_valid=True, gift_card=gift_card)


def apply_discounts(
    service_price: MoneyLike,
    coupon: Optional[Coupon] = None,
    gift_card: Optional[GiftCard] = None,
) -> AppliedDiscounts:
    """Coupon first, then the gift card against whatever is left."""
    price = round2(service_price)
    coupon_discount = calculate_discount(coupon, price) if coupon else ZERO
    after_coupon = clamp0(price - coupon_discount)
    gift_card_discount = min(round2(gift_card.balance), after_coupon) if gift_card else ZERO
    return AppliedDiscounts(
        coupon_discount=coupon_discount,
        gift_card_discount=gift_card_discount,
        coupon_class=coupon.type.coupon_class if coupon else CouponClass.NONE,
        coupon_id=coupon.id if coupon else None,
        gift_card_id=gift_card.id if gift_card and gift_card_discount > 0 else None,
    )


class InMemoryDiscountLedger:
    """Ledger backed by in-process dicts, keyed by upper-cased code."""

    def __init__(self, coupons: Optional[list[Coupon]] = None, gift_cards: Optional[list[GiftCard]] = None):
        self._coupons = {c.code.upper(): c for c in coupons or []}
        self._gift_cards = {g.code.upper(): g for g in gift_cards or []}
        self._lock = asyncio.Lock()

    def _coupon_by_id(self, coupon_id: str) -> Optional[Coupon]:
        return next((c for c in self._coupons.values() if c.id == coupon_id), None)

    def _gift_card_by_id(self, gift_card_id: str) -> Optional[GiftCard]:
        return next((g for g in self._gift_cards.values() if g.id == gift_card_id), None)

    async def validate_coupon(self, code: str, service_id: Optional[str], amount: Decimal) -> CouponValidation:
        return check_coupon(self._coupons.get(code.strip().upper()), amount, service_id)

    def calculate_discount(self, coupon: Coupon, amount: Decimal) -> Decimal:
        return calculate_discount(coupon, amount)

    async def validate_gift_card(self, code: str, amount: Decimal) -> GiftCardValidation:
        return check_gift_card(self._gift_cards.get(code.strip().upper()), amount)

    async def consume_coupon(self, coupon_id: str) -> None:
        async with self._lock:
            coupon = self._coupon_by_id(coupon_id)
            if coupon is None:
                raise ValidationError(f"Unknown coupon {coupon_id}")
            coupon.usage_count += 1
            logger.info("coupon %s used (%d)", coupon.code, coupon.usage_count)

    async def consume_gift_card(self, gift_card_id: str, amount_cents: int) -> None:
        async with self._lock:
            gift_card = self._gift_card_by_id(gift_card_id)
            if gift_card is None:
                raise ValidationError(f"Unknown gift card {gift_card_id}")
            amount = from_cents(amount_cents)
            if amount > gift_card.balance:
                raise ValidationError(
                    f"Gift card {gift_card.code} has only {gift_card.balance} left",
                    details={"requested": str(amount)},
                )
            gift_card.balance = round2(gift_card.balance - amount)
            logger.info("gift card %s debited %s, balance %s", gift_card.code, amount, gift_card.balance)
