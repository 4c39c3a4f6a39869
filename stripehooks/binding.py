"""
Handler bindings and dispatch tables.

A HandlerBinding is one registered reaction: an event type and a callable
already bound to its live component instance. A DispatchTable maps each event
type of one namespace to its bindings in discovery order. Tables are sealed
when built and never change afterwards.
"""

import asyncio
import inspect
import types
from dataclasses import dataclass
from typing import Any
from typing import Callable
from typing import Coroutine
from typing import Iterable
from typing import Mapping
from typing import Union

from stripehooks.namespaces import Namespace


HANDLER = Union[Callable[[Any], Any], Callable[[Any], Coroutine[Any, Any, Any]]]
"""
A webhook handler receives the verified event as its only argument. Can be
sync or async. Return values are ignored.
"""


def get_callable_name(callable_: Callable) -> str:
    """
    Returns the name of the callable, using class name for items with __self__,
    __qualname__ for plain functions, or str(callable_) if neither are found.
    """
    if hasattr(callable_, "__self__") and hasattr(callable_, "__name__"):
        return f"{callable_.__self__.__class__.__name__}.{callable_.__name__}"
    elif hasattr(callable_, "__qualname__"):
        return callable_.__qualname__
    else:
        return str(callable_)


@dataclass(frozen=True)
class HandlerBinding(object):
    """A handler bound to its owning instance, registered for one event type."""

    event_type: str
    """The Stripe event type this binding reacts to."""

    callback: HANDLER
    """
    The bound method that gets ran. Held strongly: the registry owns bindings
    for the lifetime of the process.
    """

    namespace: Namespace

    owner_name: str = ""
    """Class name of the owning component."""

    method_name: str = ""

    @property
    def name(self) -> str:
        """Readable identity used in logs and errors, e.g. 'Billing.on_paid'."""
        if self.owner_name and self.method_name:
            return f"{self.owner_name}.{self.method_name}"
        return get_callable_name(self.callback)

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.callback)

    async def invoke(self, event: Any) -> None:
        """
        Run the handler for one event.
        Async handlers are awaited on the loop. Sync handlers run in a worker
        thread so a blocking handler never stalls other dispatch calls.
        """
        if self.is_async:
            await self.callback(event)
            return

        result = await asyncio.to_thread(self.callback, event)
        if inspect.isawaitable(result):
            await result


DispatchTable = Mapping[str, tuple[HandlerBinding, ...]]
"""Read-only lookup from event type to its handler bindings."""

EMPTY_TABLE: DispatchTable = types.MappingProxyType({})


def seal_table(bindings: Iterable[HandlerBinding]) -> DispatchTable:
    """
    Group bindings by event type into a read-only table.
    Order of first appearance is kept for both keys and bindings.
    """
    grouped: dict[str, list[HandlerBinding]] = {}
    for binding in bindings:
        grouped.setdefault(binding.event_type, []).append(binding)

    return types.MappingProxyType(
        {event_type: tuple(items) for event_type, items in grouped.items()}
    )
