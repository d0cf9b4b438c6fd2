"""
Payment authorization lifecycle — create, reuse, expire and invalidate PSP handles.

A handle is only ever reused for the exact amount and method set it was created
for, and only for the first 20 minutes of its life.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from bookpay.errors import ValidationError
from bookpay.models.payment import (
    SUPPORTED_PSP_METHOD_TYPES,
    AuthorizationStatus,
    PaymentAuthorization,
)
from bookpay.psp import PspClient

logger = logging.getLogger(__name__)

AUTHORIZATION_TTL = timedelta(minutes=20)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthorizationManager:
    def __init__(
        self,
        psp: PspClient,
        ttl: timedelta = AUTHORIZATION_TTL,
        clock: Callable[[], datetime] = utcnow,
        currency: str = "usd",
    ):
        self._psp = psp
        self._ttl = ttl
        self._clock = clock
        self._currency = currency
        self._inflight: Optional[asyncio.Future] = None
        self._inflight_key: Optional[tuple[int, tuple[str, ...]]] = None

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def create(self, amount_cents: int, method_types: list[str]) -> PaymentAuthorization:
        if amount_cents <= 0:
            raise ValidationError("Payment amount must be greater than zero", details={"amount_cents": amount_cents})
        if not method_types:
            raise ValidationError("At least one payment method type is required")
        unsupported = [t for t in method_types if t not in SUPPORTED_PSP_METHOD_TYPES]
        if unsupported:
            raise ValidationError(f"Unsupported payment method: {', '.join(unsupported)}")

        created = await self._psp.create_authorization(amount_cents, list(method_types), self._currency)
        auth = PaymentAuthorization(
            id=created["id"],
            handle=created["handle"],
            created_at=self._clock(),
            amount_cents=amount_cents,
            method_types=list(method_types),
        )
        logger.info("authorization %s created for %d cents %s", auth.id, amount_cents, method_types)
        return auth

    def is_expired(self, auth: PaymentAuthorization) -> bool:
        return self._clock() - auth.created_at > self._ttl

    def is_reusable(self, auth: Optional[PaymentAuthorization], amount_cents: int, method_types: list[str]) -> bool:
        return (
            auth is not None
            and auth.status is AuthorizationStatus.PENDING
            and not self.is_expired(auth)
            and auth.matches(amount_cents, method_types)
        )

    async def ensure_fresh(
        self,
        auth: Optional[PaymentAuthorization],
        amount_cents: int,
        method_types: list[str],
    ) -> PaymentAuthorization:
        """Return auth unchanged if it is still good for this amount and method set, else a new one.

        Concurrent callers asking for the same amount and methods share one
        pending creation instead of each creating a handle.
        """
        if self.is_reusable(auth, amount_cents, method_types):
            logger.info("authorization %s reused", auth.id)  # type: ignore[union-attr]
            return auth  # type: ignore[return-value]
        if auth is not None and auth.status is AuthorizationStatus.PENDING:
            self.invalidate(auth)

        key = (amount_cents, tuple(sorted(method_types)))
        if self._inflight is not None and not self._inflight.done() and self._inflight_key == key:
            return await asyncio.shield(self._inflight)

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._inflight, self._inflight_key = future, key
        try:
            created = await self.create(amount_cents, method_types)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # mark retrieved so a lone caller doesn't trigger "exception never retrieved"
            future.exception()
            raise
        else:
            future.set_result(created)
            return created
        finally:
            if self._inflight is future:
                self._inflight, self._inflight_key = None, None

    def invalidate(self, auth: Optional[PaymentAuthorization]) -> None:
        """Retire a handle so it can never be confirmed against a changed amount or method."""
        if auth is None or auth.status is not AuthorizationStatus.PENDING:
            return
        auth.status = AuthorizationStatus.EXPIRED
        logger.info("authorization %s invalidated", auth.id)
