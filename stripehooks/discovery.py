"""
Component discovery contract.

The registry needs three things from whatever owns the application's
components: enumerate the live instances, enumerate the tagged methods of an
instance, and get a callable bound to that instance. Any object with a
list_components() method satisfies the container side; Container is a plain
ordered implementation for applications without a dependency injection
framework of their own.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any
from typing import Callable
from typing import Iterable
from typing import Protocol
from typing import Sequence
from typing import runtime_checkable

from stripehooks import decorators


logger = logging.getLogger(__name__)


@runtime_checkable
class ComponentContainer(Protocol):
    """Anything that can list the application's live components."""

    def list_components(self) -> Sequence[object]:
        ...


class Container(object):
    """
    Ordered collection of component instances.
    Components are reported in registration order, which becomes the handler
    discovery order.
    """

    def __init__(self, components: Iterable[object] = ()) -> None:
        self._components: list[object] = []
        for component in components:
            self.register(component)

    def register(self, component: object) -> object:
        """Add a component instance. Registering the same instance twice is a no-op."""
        if any(existing is component for existing in self._components):
            return component

        self._components.append(component)
        return component

    def list_components(self) -> Sequence[object]:
        return tuple(self._components)

    def __len__(self) -> int:
        return len(self._components)


@dataclass(frozen=True)
class DiscoveredMethod(object):
    """A tagged method found on a live component."""

    owner_name: str
    """Class name of the owning component, used for grouping in logs."""

    method_name: str

    event_type: str
    """The payload of the marker, i.e. the event type handled."""

    handler: Callable[..., Any]
    """The method, already bound to the owning instance."""

    owner: object
    """The component instance. Duplicate detection is per instance."""


def _attribute_names_in_definition_order(cls: type) -> list[str]:
    """Names defined on cls and its bases, base classes first."""
    names: list[str] = []
    seen: set[str] = set()
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name in vars(klass):
            if name not in seen:
                seen.add(name)
                names.append(name)
    return names


def tagged_methods_of(
    instance: object, marker: str
) -> list[tuple[str, str, Callable[..., Any]]]:
    """
    List the methods of an instance carrying the given marker.

    Args:
        instance (object): A live component.
        marker (str): One of the handler markers from stripehooks.decorators.
    Returns:
        list[tuple[str, str, Callable]]: (method_name, event_type,
            bound_callable) triples, one per event type a method was tagged
            with, in definition order.
    """
    results = []
    for name in _attribute_names_in_definition_order(type(instance)):
        # Static lookup so properties are never evaluated during discovery.
        raw = inspect.getattr_static(instance, name)
        if not isinstance(raw, (staticmethod, classmethod)) and not inspect.isfunction(raw):
            continue

        event_types = decorators.get_marker_payloads(raw, marker)
        if not event_types:
            continue

        bound = getattr(instance, name)
        for event_type in event_types:
            results.append((name, event_type, bound))

    return results


def discover(container: ComponentContainer, marker: str) -> list[DiscoveredMethod]:
    """
    Run one discovery pass over every component in the container.

    Args:
        container (ComponentContainer): Source of live component instances.
        marker (str): The handler marker to look for.
    Returns:
        list[DiscoveredMethod]: In component order, then definition order.
    """
    discovered = []
    for component in container.list_components():
        owner_name = component.__class__.__name__
        for method_name, event_type, bound in tagged_methods_of(component, marker):
            discovered.append(
                DiscoveredMethod(
                    owner_name=owner_name,
                    method_name=method_name,
                    event_type=event_type,
                    handler=bound,
                    owner=component,
                )
            )

    logger.debug(f"Discovered {len(discovered)} methods tagged '{marker}'")
    return discovered
