"""
Payment models — rails, authorization handles, billing details and confirmation results.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from bookpay.errors import ErrorClass


class PaymentMethod(str, Enum):
    """The closed set of payment rails. Every dispatch over it must handle all five."""
    CARD = "card"
    KLARNA = "klarna"
    AFFIRM = "affirm"
    AFTERPAY = "afterpay"
    CHERRY = "cherry"

    @property
    def is_pay_later(self) -> bool:
        return self is not PaymentMethod.CARD

    @property
    def requires_authorization(self) -> bool:
        """Cherry is settled on the provider's own site, so no PSP handle is ever created for it."""
        return self is not PaymentMethod.CHERRY

    @property
    def psp_method_types(self) -> list[str]:
        return list(PSP_METHOD_TYPES[self])

    @property
    def label(self) -> str:
        return METHOD_LABELS[self]


PSP_METHOD_TYPES: dict[PaymentMethod, tuple[str, ...]] = {
    PaymentMethod.CARD: ("card",),
    PaymentMethod.KLARNA: ("klarna",),
    PaymentMethod.AFFIRM: ("affirm",),
    PaymentMethod.AFTERPAY: ("afterpay_clearpay",),
    PaymentMethod.CHERRY: (),
}

METHOD_LABELS: dict[PaymentMethod, str] = {
    PaymentMethod.CARD: "Credit/Debit Card",
    PaymentMethod.KLARNA: "Klarna",
    PaymentMethod.AFFIRM: "Affirm",
    PaymentMethod.AFTERPAY: "Afterpay",
    PaymentMethod.CHERRY: "Cherry",
}

SUPPORTED_PSP_METHOD_TYPES = frozenset(t for types in PSP_METHOD_TYPES.values() for t in types)


class AuthorizationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    EXPIRED = "expired"


class PaymentAuthorization(BaseModel):
    """A PSP-side handle for a pending amount awaiting confirmation."""
    id: str
    handle: str
    created_at: datetime
    amount_cents: int
    method_types: list[str]
    status: AuthorizationStatus = AuthorizationStatus.PENDING

    def matches(self, amount_cents: int, method_types: list[str]) -> bool:
        return self.amount_cents == amount_cents and sorted(self.method_types) == sorted(method_types)


class PreApproval(str, Enum):
    """Manual financing pre-approval the customer reports for Klarna / Affirm."""
    UNKNOWN = "unknown"
    APPROVED = "approved"
    DECLINED = "declined"


class Address(BaseModel):
    line1: str = ""
    line2: Optional[str] = None
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = "US"

    def missing_fields(self) -> list[str]:
        required = ("line1", "city", "state", "postal_code")
        return [f for f in required if not getattr(self, f).strip()]


class BillingDetails(BaseModel):
    name: str = ""
    email: str = ""
    address: Address = Field(default_factory=Address)
    card_token: Optional[str] = None
    pre_approval: PreApproval = PreApproval.UNKNOWN

    def to_psp(self) -> dict:
        """Billing details in the shape the PSP expects."""
        data: dict = {"address": self.address.model_dump(exclude_none=True)}
        if self.name:
            data["name"] = self.name
        if self.email:
            data["email"] = self.email
        return data


class ConfirmationResult(BaseModel):
    """What an adapter reports back. Expected failures are data, never exceptions."""
    success: bool
    status: Optional[str] = None
    provider_payment_id: Optional[str] = None
    error_class: Optional[ErrorClass] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    provisional: bool = False
    field_errors: dict[str, str] = {}
    redirect_url: Optional[str] = None

    @classmethod
    def failure(
        cls,
        error_class: ErrorClass,
        message: str,
        error_code: Optional[str] = None,
        **kwargs,
    ) -> "ConfirmationResult":
        return cls(
            success=False,
            error_class=error_class,
            error_code=error_code or error_class.value,
            message=message,
            **kwargs,
        )
