"""
Handler registry.

Turns the tagged methods of the application's components into one sealed
DispatchTable per namespace. Discovery runs once at boot; components created
afterwards are never picked up.
"""

import logging
from typing import Iterable
from typing import Union

from stripehooks import decorators
from stripehooks import discovery
from stripehooks.binding import DispatchTable
from stripehooks.binding import HandlerBinding
from stripehooks.binding import seal_table
from stripehooks.exceptions import DuplicateHandlerError
from stripehooks.namespaces import Namespace


logger = logging.getLogger(__name__)


_REGISTERING_MESSAGES = {
    Namespace.ACCOUNT: "Registering Stripe webhook handlers from {owner}",
    Namespace.CONNECT: "Registering Stripe Connect webhook handlers from {owner}",
}


def _group_by_owner(
    methods: Iterable[discovery.DiscoveredMethod],
) -> dict[str, list[discovery.DiscoveredMethod]]:
    grouped: dict[str, list[discovery.DiscoveredMethod]] = {}
    for method in methods:
        grouped.setdefault(method.owner_name, []).append(method)
    return grouped


class HandlerRegistry(object):
    """
    Builds dispatch tables from a component container.

    The registry is stateless between calls, so building the same namespace
    twice over an unchanged container produces equal tables.
    """

    def __init__(self, container: discovery.ComponentContainer) -> None:
        self.container = container

    def discover(self, marker: str) -> list[discovery.DiscoveredMethod]:
        """List every method carrying the marker, in discovery order."""
        return discovery.discover(self.container, marker)

    def build_bindings(self, namespace: Union[Namespace, str]) -> list[HandlerBinding]:
        """
        Discover and bind the handlers of one namespace.

        Args:
            namespace (Namespace): Which marker to scan for.
        Returns:
            list[HandlerBinding]: Bindings grouped by owner, in discovery order.
        Raises:
            DuplicateHandlerError: If the same bound method is registered twice
                for the same event type.
        """
        namespace = Namespace.coerce(namespace)
        marker = decorators.MARKER_BY_NAMESPACE[namespace]

        bindings: list[HandlerBinding] = []
        seen: set[tuple[str, int, str]] = set()

        for owner_name, methods in _group_by_owner(self.discover(marker)).items():
            logger.info(_REGISTERING_MESSAGES[namespace].format(owner=owner_name))

            for method in methods:
                # Keyed per instance: a static handler shared by two instances
                # of one class is registered once for each.
                key = (method.event_type, id(method.owner), method.method_name)
                if key in seen:
                    raise DuplicateHandlerError(
                        f"Handler '{owner_name}.{method.method_name}' is registered "
                        f"more than once for {namespace.value} event "
                        f"'{method.event_type}'"
                    )
                seen.add(key)

                bindings.append(
                    HandlerBinding(
                        event_type=method.event_type,
                        callback=method.handler,
                        namespace=namespace,
                        owner_name=owner_name,
                        method_name=method.method_name,
                    )
                )

        return bindings

    def build_table(self, namespace: Union[Namespace, str]) -> DispatchTable:
        """Discover the handlers of one namespace and seal them into a table."""
        return seal_table(self.build_bindings(namespace))
