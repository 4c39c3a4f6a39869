"""
Markers that tag component methods as webhook handlers.

The decorators do not register anything on their own. They record the event
type on the function, and the registry picks tagged methods up when it scans
the application's components at boot.

    class BillingHandlers:
        @stripe_webhook_handler("invoice.paid")
        async def on_invoice_paid(self, event):
            ...

        @stripe_connect_webhook_handler("account.updated")
        async def on_account_updated(self, event):
            ...

A method may be tagged several times, for several event types or for both
namespaces.
"""

from typing import Any
from typing import Callable
from typing import TypeVar

from stripehooks.namespaces import Namespace


STRIPE_WEBHOOK_HANDLER = "stripehooks.webhook_handler"
"""Marker for primary account webhook handlers."""

STRIPE_CONNECT_WEBHOOK_HANDLER = "stripehooks.connect_webhook_handler"
"""Marker for Connect webhook handlers."""

MARKER_BY_NAMESPACE = {
    Namespace.ACCOUNT: STRIPE_WEBHOOK_HANDLER,
    Namespace.CONNECT: STRIPE_CONNECT_WEBHOOK_HANDLER,
}

_MARKER_ATTR = "__stripehooks_markers__"

F = TypeVar("F", bound=Callable[..., Any])


def get_marker_payloads(func: Any, marker: str) -> list[str]:
    """Return the event types a function was tagged with for the marker."""
    target = getattr(func, "__func__", func)
    markers = getattr(target, _MARKER_ATTR, None)
    if not isinstance(markers, dict):
        return []
    return list(markers.get(marker, []))


def _make_marker_decorator(marker: str) -> Callable[[str], Callable[[F], F]]:
    """
    Create a decorator factory that tags functions with the given marker.

    Decorators apply bottom-up, so payloads are inserted at the front to keep
    the event types in the order they are written above the method.
    """

    def tag_(event_type: str) -> Callable[[F], F]:
        if not isinstance(event_type, str) or not event_type:
            raise ValueError(
                f"Webhook event type must be a non-empty string, got {event_type!r}"
            )

        def decorator(func: F) -> F:
            # staticmethod and classmethod wrap the real function
            target = getattr(func, "__func__", func)
            markers = target.__dict__.setdefault(_MARKER_ATTR, {})
            markers.setdefault(marker, []).insert(0, event_type)
            return func

        return decorator

    return tag_


stripe_webhook_handler = _make_marker_decorator(STRIPE_WEBHOOK_HANDLER)
"""
Tag a method as a handler for a primary account webhook event.

Args:
    event_type (str): The Stripe event type, e.g. 'charge.succeeded'.
"""

stripe_connect_webhook_handler = _make_marker_decorator(STRIPE_CONNECT_WEBHOOK_HANDLER)
"""
Tag a method as a handler for a Connect webhook event.

Args:
    event_type (str): The Stripe event type, e.g. 'account.updated'.
"""
