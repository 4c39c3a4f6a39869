"""Shared fixtures: sample handler components and signed payload helpers."""

import hashlib
import hmac
import json
import time
from typing import Any
from typing import Optional

import pytest

from stripehooks import handlers
from stripehooks import stripe_connect_webhook_handler
from stripehooks import stripe_webhook_handler


ACCOUNT_SECRET = "whsec_account_test"
CONNECT_SECRET = "whsec_connect_test"


def make_event(event_type: str, **fields: Any) -> dict[str, Any]:
    """A decoded event as the verifier would produce it."""
    return {"id": f"evt_{event_type.replace('.', '_')}", "type": event_type, **fields}


def sign_payload(payload: str, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a stripe-signature header the way Stripe does."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def event_payload(event_type: str) -> str:
    return json.dumps(
        {
            "id": "evt_test",
            "object": "event",
            "type": event_type,
            "data": {"object": {"id": "obj_test"}},
        }
    )


class ChargeHandlers:
    """Handles the same event type in both namespaces."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    @stripe_webhook_handler("charge.succeeded")
    async def on_charge_succeeded(self, event: Any) -> None:
        self.calls.append("account:charge.succeeded")

    @stripe_connect_webhook_handler("charge.succeeded")
    async def on_connect_charge_succeeded(self, event: Any) -> None:
        self.calls.append("connect:charge.succeeded")


class InvoiceHandlers:
    def __init__(self) -> None:
        self.calls: list[str] = []

    @stripe_webhook_handler("invoice.paid")
    async def on_invoice_paid(self, event: Any) -> None:
        self.calls.append("invoice.paid")


class LedgerHandlers:
    def __init__(self) -> None:
        self.calls: list[str] = []

    @stripe_webhook_handler("invoice.paid")
    def record_invoice(self, event: Any) -> None:
        self.calls.append("ledger:invoice.paid")

    @stripe_webhook_handler("invoice.payment_failed")
    @stripe_webhook_handler("charge.failed")
    def record_failure(self, event: Any) -> None:
        self.calls.append(f"ledger:{event['type']}")


@pytest.fixture(autouse=True)
def clear_collected_exceptions() -> None:
    handlers.exceptions_caught.clear()
