"""Shared fakes: a scripted PSP, a controllable clock and an in-memory booking store."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from bookpay.adapters.registry import build_adapters
from bookpay.authorization import AuthorizationManager
from bookpay.models.payment import Address, BillingDetails, PreApproval
from bookpay.orchestrator import ConfirmationOrchestrator


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


class FakePsp:
    """Stands in for PspClient. confirm_outcomes is consumed one entry per confirm call:
    an exception instance is raised, a string is returned as the status."""

    def __init__(self, confirm_outcomes: Optional[list] = None, create_delay: float = 0.0):
        self.created: list[dict] = []
        self.confirmed: list[dict] = []
        self.confirm_outcomes = list(confirm_outcomes or [])
        self.create_delay = create_delay
        self.create_error: Optional[Exception] = None
        self.confirm_delay = 0.0

    async def create_authorization(self, amount_cents: int, method_types: list[str], currency: Optional[str] = None):
        if self.create_delay:
            await asyncio.sleep(self.create_delay)
        if self.create_error is not None:
            raise self.create_error
        auth_id = f"pi_{len(self.created) + 1}"
        self.created.append({"id": auth_id, "amount_cents": amount_cents, "method_types": method_types})
        return {"id": auth_id, "handle": f"{auth_id}_secret"}

    async def confirm_authorization(self, authorization_id, method_type, billing_details,
                                    payment_method_data=None, return_url=None):
        if self.confirm_delay:
            await asyncio.sleep(self.confirm_delay)
        self.confirmed.append({
            "id": authorization_id,
            "method_type": method_type,
            "payment_method_data": payment_method_data,
            "return_url": return_url,
        })
        outcome = self.confirm_outcomes.pop(0) if self.confirm_outcomes else "succeeded"
        if isinstance(outcome, Exception):
            raise outcome
        return {"id": authorization_id, "status": outcome}


class FakeBooking:
    def __init__(self, fail_appointment: bool = False, fail_slot: bool = False):
        self.appointments: list[dict] = []
        self.slots: list[tuple] = []
        self.fail_appointment = fail_appointment
        self.fail_slot = fail_slot

    async def create_appointment(self, data: dict) -> str:
        if self.fail_appointment:
            raise RuntimeError("database unavailable")
        self.appointments.append(data)
        return f"appt_{len(self.appointments)}"

    async def book_time_slot(self, artist_id: str, date: str, time: str, appointment_id: str) -> None:
        if self.fail_slot:
            raise RuntimeError("slot already taken")
        self.slots.append((artist_id, date, time, appointment_id))


def full_billing(**overrides: Any) -> BillingDetails:
    values: dict[str, Any] = {
        "name": "Dana Lee",
        "email": "dana@example.com",
        "address": Address(line1="1 Main St", city="Austin", state="TX", postal_code="78701"),
        "card_token": "tok_visa",
        "pre_approval": PreApproval.APPROVED,
    }
    values.update(overrides)
    return BillingDetails(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def psp() -> FakePsp:
    return FakePsp()


@pytest.fixture
def manager(psp: FakePsp, clock: FakeClock) -> AuthorizationManager:
    return AuthorizationManager(psp, clock=clock)  # type: ignore[arg-type]


@pytest.fixture
def opened_urls() -> list:
    return []


@pytest.fixture
def adapters(psp: FakePsp, opened_urls: list):
    return build_adapters(psp=psp, return_url="https://shop.example/return", opener=opened_urls.append)


@pytest.fixture
def orchestrator(manager: AuthorizationManager, adapters) -> ConfirmationOrchestrator:
    return ConfirmationOrchestrator(manager, adapters)
