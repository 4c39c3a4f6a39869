"""
Failure policies for webhook handlers.

When a handler raises, the router wraps the exception in a
HandlerInvocationError and passes it to the router's exception handler. A
policy only decides how the failure is made visible: every sibling handler
still runs and the dispatch call still completes whatever the policy does.

Built in policies: log with traceback (log_handler_exception, the default),
log a one line warning (warn_handler_exception), ignore
(silent_handler_exception) and collect for later inspection
(collect_handler_exception).
"""

import logging
import sys
from typing import Any
from typing import Callable

from stripehooks.binding import HandlerBinding
from stripehooks.exceptions import HandlerInvocationError


logger = logging.getLogger(__name__)


HANDLER_EXCEPTION_HANDLER = Callable[[HandlerBinding, Any, HandlerInvocationError], None]
"""
Signature for handler exception handlers.

Receives the failing binding, the event being dispatched, and the wrapped
error. The original exception is available as error.cause.
"""


def log_handler_exception(
    binding: HandlerBinding, _: Any, error: HandlerInvocationError
) -> None:
    """Log the failing handler's identity and the traceback of the cause."""
    cause = error.cause
    logger.error(
        f"Exception in Stripe webhook handler:\n"
        f"  Namespace:  {error.namespace}\n"
        f"  Event type: {error.event_type}\n"
        f"  Handler:    {binding.name}\n"
        f"  Exception:  {cause.__class__.__name__}: {cause}",
        exc_info=(type(cause), cause, cause.__traceback__),
    )


def warn_handler_exception(
    binding: HandlerBinding, _: Any, error: HandlerInvocationError
) -> None:
    """Log a single warning line without a traceback."""
    logger.warning(
        f"Webhook handler error (continuing): "
        f"{binding.name} in {error.namespace}/{error.event_type}: {error.cause}"
    )


def silent_handler_exception(
    _: HandlerBinding, __: Any, ___: HandlerInvocationError
) -> None:
    """Silently ignore handler failures."""


exceptions_caught = []


def collect_handler_exception(
    binding: HandlerBinding, _: Any, error: HandlerInvocationError
) -> None:
    """
    Collect failures for batch processing.
    This appends failures to stripehooks.handlers.exceptions_caught, which is a
    list. Either manage the list manually or use this function as an example
    of a more robust collector.
    """
    cause = error.cause
    exceptions_caught.append(
        {
            "handler": binding.name,
            "namespace": error.namespace,
            "event_type": error.event_type,
            "exception": f"{cause.__class__.__name__}: {cause}",
            "exc_info": sys.exc_info(),
        }
    )
