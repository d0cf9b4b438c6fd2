"""
Adapter registry — one adapter per payment rail, checked for completeness at import.
"""

from typing import Any, Callable, Optional

from bookpay.adapters.base import DEFAULT_WIDGET_READY_TIMEOUT_S, PaymentMethodAdapter
from bookpay.adapters.bnpl import AffirmAdapter, AfterpayAdapter, KlarnaAdapter
from bookpay.adapters.card import CardAdapter
from bookpay.adapters.cherry import DEFAULT_CHERRY_CHECKOUT_URL, CherryAdapter
from bookpay.errors import ValidationError
from bookpay.models.payment import PaymentMethod
from bookpay.psp import PspClient

ADAPTER_CLASSES: dict[PaymentMethod, type[PaymentMethodAdapter]] = {
    PaymentMethod.CARD: CardAdapter,
    PaymentMethod.KLARNA: KlarnaAdapter,
    PaymentMethod.AFFIRM: AffirmAdapter,
    PaymentMethod.AFTERPAY: AfterpayAdapter,
    PaymentMethod.CHERRY: CherryAdapter,
}

_missing = set(PaymentMethod) - set(ADAPTER_CLASSES)
if _missing:
    raise ImportError(f"No adapter registered for: {sorted(m.value for m in _missing)}")


def adapter_for(
    method: Any,
    psp: Optional[PspClient] = None,
    return_url: Optional[str] = None,
    cherry_checkout_url: str = DEFAULT_CHERRY_CHECKOUT_URL,
    opener: Optional[Callable[[str], Any]] = None,
    widget_ready_timeout: float = DEFAULT_WIDGET_READY_TIMEOUT_S,
) -> PaymentMethodAdapter:
    try:
        method = PaymentMethod(method)
    except ValueError:
        raise ValidationError(f"Unsupported payment method: {method}")
    cls = ADAPTER_CLASSES[method]
    if cls is CherryAdapter:
        kwargs: dict[str, Any] = {"checkout_url": cherry_checkout_url}
        if opener is not None:
            kwargs["opener"] = opener
        return CherryAdapter(psp=psp, return_url=return_url, **kwargs)
    return cls(psp=psp, return_url=return_url, widget_ready_timeout=widget_ready_timeout)


def build_adapters(**kwargs: Any) -> dict[PaymentMethod, PaymentMethodAdapter]:
    return {method: adapter_for(method, **kwargs) for method in PaymentMethod}
