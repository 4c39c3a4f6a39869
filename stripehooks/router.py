"""
# Webhook Router

Dispatch engine for verified Stripe events.

The router is built with one sealed DispatchTable per namespace and never
changes afterwards. Each call to route_event() looks up the handlers
registered for the event's type, starts all of them together, and waits until
every one has settled. A failing handler is reported through the router's
exception handler and recorded in the returned DispatchResult; it never stops
its siblings and never makes route_event() raise.

Calls are independent of one another. Two events routed back to back may have
their handlers interleave arbitrarily.
"""

import asyncio
import logging
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Union

from stripehooks import handlers
from stripehooks.binding import EMPTY_TABLE
from stripehooks.binding import DispatchTable
from stripehooks.binding import HandlerBinding
from stripehooks.exceptions import HandlerInvocationError
from stripehooks.namespaces import ALL_NAMESPACES
from stripehooks.namespaces import Namespace


logger = logging.getLogger(__name__)


_FORWARDING_MESSAGES = {
    Namespace.ACCOUNT: "Received webhook event for {type}. "
    "Forwarding to {count} event handlers",
    Namespace.CONNECT: "Received connect webhook event for {type}. "
    "Forwarding to {count} event handlers",
}


def get_event_type(event: Any) -> Optional[str]:
    """
    Read the type of an event.
    Accepts mappings (decoded JSON) and objects exposing a type attribute
    (stripe.Event and similar).
    """
    if isinstance(event, MappingABC):
        event_type = event.get("type")
    else:
        event_type = getattr(event, "type", None)

    if isinstance(event_type, str) and event_type:
        return event_type
    return None


@dataclass
class DispatchResult(object):
    """Best-effort summary of one route_event() call."""

    namespace: Namespace
    event_type: Optional[str]

    handler_count: int = 0
    """How many handlers matched and were started."""

    failures: list[HandlerInvocationError] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.handler_count - len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def matched(self) -> bool:
        return self.handler_count > 0


class WebhookRouter(object):
    """
    Routes events to the handlers registered for their type.

    Use route_event() for either namespace, or the handle_webhook() and
    handle_connect_webhook() shortcuts.
    """

    def __init__(
        self,
        tables: Mapping[Union[Namespace, str], DispatchTable],
        log_matching_event_handlers: bool = False,
        exception_handler: Optional[handlers.HANDLER_EXCEPTION_HANDLER] = None,
    ) -> None:
        self._tables: dict[Namespace, DispatchTable] = {
            namespace: EMPTY_TABLE for namespace in ALL_NAMESPACES
        }
        for namespace, table in tables.items():
            self._tables[Namespace.coerce(namespace)] = table

        self.log_matching_event_handlers = log_matching_event_handlers

        self._exception_handler: handlers.HANDLER_EXCEPTION_HANDLER = (
            exception_handler or handlers.log_handler_exception
        )

    @property
    def ready(self) -> bool:
        """Tables are sealed at construction, so a router is always ready."""
        return True

    def set_handler_exception_handler(
        self, handler: Optional[handlers.HANDLER_EXCEPTION_HANDLER]
    ) -> None:
        """
        Set the policy used to report handler failures.

        Args:
            handler (Optional[handlers.HANDLER_EXCEPTION_HANDLER]):
                Callable with signature
                (HandlerBinding, event, HandlerInvocationError) -> None.
                Pass None to restore the default logging policy.
        """
        self._exception_handler = handler or handlers.log_handler_exception

    # -----Dispatch------------------------------------------------------------

    async def route_event(
        self, event: Any, namespace: Union[Namespace, str]
    ) -> DispatchResult:
        """
        Dispatch one verified event to every matching handler.

        All matching handlers are started before any is awaited, and the call
        returns once all of them have settled.

        Args:
            event (Any): The verified event. Only its 'type' is inspected.
            namespace (Namespace): The namespace the event was delivered to.
        Returns:
            DispatchResult: Match count and any handler failures.
        Raises:
            ValueError: If namespace is not a known namespace. Handler failures
                are never raised.
        """
        namespace = Namespace.coerce(namespace)
        event_type = get_event_type(event)

        if event_type is None:
            logger.warning(
                f"Received {namespace.value} webhook event without a type. Ignoring."
            )
            return DispatchResult(namespace=namespace, event_type=None)

        bindings = self._tables[namespace].get(event_type, ())
        if not bindings:
            return DispatchResult(namespace=namespace, event_type=event_type)

        if self.log_matching_event_handlers:
            logger.info(
                _FORWARDING_MESSAGES[namespace].format(
                    type=event_type, count=len(bindings)
                )
            )

        # Cancellation raised inside a handler comes back as a result; only
        # cancelling the caller reaches this await.
        outcomes = await asyncio.gather(
            *(self._invoke(binding, event) for binding in bindings),
            return_exceptions=True,
        )

        failures = []
        for binding, outcome in zip(bindings, outcomes):
            if outcome is None:
                continue
            if isinstance(outcome, asyncio.CancelledError):
                outcome = self._fail(binding, event, outcome)
            elif not isinstance(outcome, HandlerInvocationError):
                raise outcome
            failures.append(outcome)

        return DispatchResult(
            namespace=namespace,
            event_type=event_type,
            handler_count=len(bindings),
            failures=failures,
        )

    async def handle_webhook(self, event: Any) -> DispatchResult:
        """Dispatch a primary account event."""
        return await self.route_event(event, Namespace.ACCOUNT)

    async def handle_connect_webhook(self, event: Any) -> DispatchResult:
        """Dispatch a Connect event."""
        return await self.route_event(event, Namespace.CONNECT)

    async def _invoke(
        self, binding: HandlerBinding, event: Any
    ) -> Optional[HandlerInvocationError]:
        """Run one handler, turning any exception into a reported error."""
        try:
            await binding.invoke(event)
        except Exception as e:
            return self._fail(binding, event, e)

        return None

    def _fail(
        self, binding: HandlerBinding, event: Any, cause: BaseException
    ) -> HandlerInvocationError:
        error = HandlerInvocationError(
            handler_name=binding.name,
            namespace=binding.namespace.value,
            event_type=binding.event_type,
            cause=cause,
            event=event,
        )
        self._report(binding, event, error)
        return error

    def _report(
        self, binding: HandlerBinding, event: Any, error: HandlerInvocationError
    ) -> None:
        try:
            self._exception_handler(binding, event, error)
        except Exception:
            # A broken policy must not turn one handler failure into a failed
            # dispatch.
            logger.exception(
                f"Handler exception handler failed while reporting {error}"
            )

    # -----Introspection-------------------------------------------------------

    def get_table(self, namespace: Union[Namespace, str]) -> DispatchTable:
        return self._tables[Namespace.coerce(namespace)]

    def get_handlers(
        self, namespace: Union[Namespace, str], event_type: str
    ) -> list[HandlerBinding]:
        """Get the bindings registered for an event type, in dispatch order."""
        return list(self.get_table(namespace).get(event_type, ()))

    def get_event_types(self, namespace: Union[Namespace, str]) -> list[str]:
        """Get every event type with at least one handler, sorted."""
        return sorted(self.get_table(namespace))

    def get_handler_count(
        self, namespace: Union[Namespace, str], event_type: Optional[str] = None
    ) -> int:
        """
        Count handlers in a namespace.

        Args:
            namespace (Namespace): Namespace to count.
            event_type (Optional[str]): Restrict the count to one event type.
        Returns:
            int: Number of bindings.
        """
        table = self.get_table(namespace)
        if event_type is not None:
            return len(table.get(event_type, ()))
        return sum(len(bindings) for bindings in table.values())

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        """Convert the routing tables to a dictionary of handler names."""
        return {
            namespace.value: {
                event_type: [binding.name for binding in bindings]
                for event_type, bindings in self._tables[namespace].items()
            }
            for namespace in ALL_NAMESPACES
        }
