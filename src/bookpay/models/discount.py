"""
Coupon and gift card models.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from bookpay.models.pricing import CouponClass
from bookpay.money import ZERO


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SERVICE = "free_service"
    EXACT_AMOUNT = "exact_amount"
    PAY_AFTER_SERVICE = "pay_after_service"

    @property
    def coupon_class(self) -> CouponClass:
        if self is CouponType.FREE_SERVICE:
            return CouponClass.FREE
        if self is CouponType.PAY_AFTER_SERVICE:
            return CouponClass.DEFERRED
        return CouponClass.STANDARD


class Coupon(BaseModel):
    id: str
    code: str
    type: CouponType
    value: Decimal = ZERO
    exact_amount: Optional[Decimal] = None
    description: str = ""
    min_order_amount: Optional[Decimal] = None
    max_discount_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    is_active: bool = True
    expires_at: Optional[datetime] = None
    applicable_services: list[str] = []


class GiftCard(BaseModel):
    id: str
    code: str
    balance: Decimal = Field(default=ZERO, ge=0)
    is_active: bool = True
    expires_at: Optional[datetime] = None


class CouponValidation(BaseModel):
    is_valid: bool
    coupon: Optional[Coupon] = None
    error: Optional[str] = None


class GiftCardValidation(BaseModel):
    is_valid: bool
    gift_card: Optional[GiftCard] = None
    error: Optional[str] = None


class AppliedDiscounts(BaseModel):
    coupon_discount: Decimal = ZERO
    gift_card_discount: Decimal = ZERO
    coupon_class: CouponClass = CouponClass.NONE
    coupon_id: Optional[str] = None
    gift_card_id: Optional[str] = None
