"""
Webhook namespace definitions.

Stripe delivers webhooks to two isolated endpoints: events for the platform's
own account, and events for connected (sub-)accounts. Each namespace has its
own signing secret and its own handler table, and the two never share
handlers or events.
"""

import enum
from typing import Union


class Namespace(str, enum.Enum):
    """The webhook universe an event was delivered to."""

    ACCOUNT = "account"
    """Primary account events."""

    CONNECT = "connect"
    """Connect sub-account events."""

    @classmethod
    def coerce(cls, value: Union["Namespace", str]) -> "Namespace":
        """Accept either a Namespace or its string value."""
        if isinstance(value, cls):
            return value

        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Unknown webhook namespace '{value}'. "
                f"Expected one of: {sorted(n.value for n in cls)}"
            ) from None


ALL_NAMESPACES = (Namespace.ACCOUNT, Namespace.CONNECT)
"""Namespaces in discovery order."""
