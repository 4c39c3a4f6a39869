"""
Exception taxonomy for stripehooks.

Boot-time errors (configuration and discovery) are fatal and meant to abort
startup. HandlerInvocationError is built per failing handler by the router and
is never raised out of a dispatch call. VerificationError belongs to the
payload verifier and is turned into a rejected request by the entry point.
"""

from typing import Any
from typing import Optional


class StripeHooksError(Exception):
    """Base class for every error raised by stripehooks."""


# -----Boot Errors-------------------------------------------------------------


class ConfigError(StripeHooksError):
    """Raised when the module configuration cannot be used."""


class NoSecretsProvidedError(ConfigError):
    """Raised when webhooks are configured without any signing secret."""


class DiscoveryError(StripeHooksError):
    """Raised when handler discovery cannot produce a usable table."""


class MissingRouterOwnerError(DiscoveryError):
    """Raised when no component exists to receive the wired-up router."""


class DuplicateHandlerError(DiscoveryError):
    """Raised when one handler is registered twice for the same event type."""


class AlreadyInitializedError(StripeHooksError):
    """Raised when initialization is attempted more than once."""


class RouterNotReadyError(StripeHooksError):
    """Raised when the router is used before initialization completed."""


# -----Runtime Errors----------------------------------------------------------


class VerificationError(StripeHooksError):
    """Raised when a webhook payload fails signature verification."""


class HandlerInvocationError(StripeHooksError):
    """
    A single handler failed while processing an event.

    Built by the router around the original exception, handed to the router's
    exception handler, and collected into the dispatch result.
    """

    def __init__(
        self,
        handler_name: str,
        namespace: str,
        event_type: str,
        cause: BaseException,
        event: Optional[Any] = None,
    ) -> None:
        self.handler_name = handler_name
        self.namespace = namespace
        self.event_type = event_type
        self.cause = cause
        self.event = event
        super().__init__(
            f"Handler '{handler_name}' failed for {namespace} event "
            f"'{event_type}': {cause.__class__.__name__}: {cause}"
        )
