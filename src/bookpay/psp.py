"""
Payment service provider API — create and confirm payment authorizations.

PSP error bodies are classified into the bookpay error hierarchy here so that
callers only ever see ValidationError, NetworkError, AuthorizationExpiredError
or TerminalPaymentError.
"""

import logging
import uuid
from typing import Any, Optional

from bookpay.errors import (
    AuthorizationExpiredError,
    BookPayError,
    NetworkError,
    TerminalPaymentError,
    ValidationError,
)
from bookpay.transport.http import HttpClient, HttpError

logger = logging.getLogger(__name__)

EXPIRED_CODES = {"resource_missing", "payment_intent_unexpected_state", "payment_intent_not_found"}
VALIDATION_CODES = {"parameter_invalid_integer", "parameter_invalid_empty", "parameter_missing",
                    "parameter_unknown", "amount_too_small", "validation_error", "invalid_request"}


def _error_fields(body: Any) -> tuple[str, str]:
    """Pull (code, message) out of either {"error": {...}} or a flat {status, message} body."""
    if isinstance(body, dict):
        err = body.get("error", body)
        if isinstance(err, dict):
            return str(err.get("code") or err.get("decline_code") or ""), str(err.get("message") or "")
        if isinstance(err, str):
            return "", err
    return "", ""


def classify_http_error(e: HttpError) -> BookPayError:
    code, message = _error_fields(e.body)
    message = message or str(e)
    logger.info("PSP returned HTTP %d (%s): %s", e.status, code or "no code", message)
    if (
        e.status == 404
        or code in EXPIRED_CODES
        or "no such payment_intent" in message.lower()
    ):
        return AuthorizationExpiredError(message, code=code or "authorization_expired")
    if e.status >= 500 or e.status == 429:
        return NetworkError(message, code=code or "network")
    if code in VALIDATION_CODES or code.startswith(("parameter_", "validation")) or (e.status == 400 and not code):
        return ValidationError(message, code=code or "validation")
    return TerminalPaymentError(message, code=code or "terminal", details={"status": e.status})


def classify_create_error(e: HttpError) -> BookPayError:
    """Creation failures surface as validation or network only."""
    err = classify_http_error(e)
    if isinstance(err, (ValidationError, NetworkError)):
        return err
    return NetworkError(err.message, code=err.code)


class PspClient:
    def __init__(self, http: HttpClient, currency: str = "usd"):
        self._http = http
        self._currency = currency

    async def create_authorization(
        self,
        amount_cents: int,
        method_types: list[str],
        currency: Optional[str] = None,
    ) -> dict[str, str]:
        """Create a payment intent. Returns {id, handle}."""
        try:
            data = await self._http.post(
                "/v1/payment_intents",
                {
                    "amount": amount_cents,
                    "currency": currency or self._currency,
                    "payment_method_types": method_types,
                },
                idempotency_key=str(uuid.uuid4()),
            )
        except HttpError as e:
            raise classify_create_error(e)
        if not isinstance(data, dict) or not data.get("id"):
            raise NetworkError("Payment provider returned no authorization id")
        handle = data.get("client_secret") or data.get("handle")
        if not handle:
            raise NetworkError("Failed to create payment intent - no client_secret returned")
        return {"id": data["id"], "handle": handle}

    async def confirm_authorization(
        self,
        authorization_id: str,
        method_type: str,
        billing_details: dict[str, Any],
        payment_method_data: Optional[dict[str, Any]] = None,
        return_url: Optional[str] = None,
    ) -> dict[str, Any]:
        """Confirm a payment intent. Returns {id, status}."""
        body: dict[str, Any] = {
            "payment_method_data": {
                "type": method_type,
                "billing_details": billing_details,
                **(payment_method_data or {}),
            },
        }
        if return_url:
            body["return_url"] = return_url
        try:
            data = await self._http.post(f"/v1/payment_intents/{authorization_id}/confirm", body)
        except HttpError as e:
            raise classify_http_error(e)
        if not isinstance(data, dict):
            raise NetworkError("Payment provider returned an unreadable confirmation")
        if data.get("last_payment_error"):
            code, message = _error_fields({"error": data["last_payment_error"]})
            raise TerminalPaymentError(message or "Payment failed", code=code or "terminal")
        return {"id": data.get("id", authorization_id), "status": data.get("status", "")}

    async def close(self) -> None:
        await self._http.close()
