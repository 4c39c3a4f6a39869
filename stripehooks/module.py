"""
# Stripe Module

Composition root for the webhook subsystem.

StripeModule owns the configuration, the Stripe client, and once initialized,
the router and the entry point built around it. The application creates one
module at startup, calls initialize() once its components exist, and hands
module.webhook_service (or the HTTP router built from it) to its transport.

    container = Container([BillingHandlers(), PayoutHandlers()])
    module = StripeModule(config, container)
    module.initialize()
    app.include_router(module.create_webhook_router())

Initialization walks UNINITIALIZED -> VALIDATING -> DISCOVERING -> READY, or
ends in FAILED. Without a webhook config it ends in DISABLED and nothing is
discovered.
"""

import enum
import logging
from typing import Optional

import stripe
from fastapi import APIRouter

from stripehooks import handlers
from stripehooks.binding import EMPTY_TABLE
from stripehooks.binding import DispatchTable
from stripehooks.config import StripeModuleConfig
from stripehooks.config import WebhookConfig
from stripehooks.discovery import ComponentContainer
from stripehooks.exceptions import AlreadyInitializedError
from stripehooks.exceptions import MissingRouterOwnerError
from stripehooks.exceptions import NoSecretsProvidedError
from stripehooks.exceptions import RouterNotReadyError
from stripehooks.namespaces import ALL_NAMESPACES
from stripehooks.namespaces import Namespace
from stripehooks.payload import StripePayloadService
from stripehooks.registry import HandlerRegistry
from stripehooks.router import WebhookRouter
from stripehooks.webhook import StripeWebhookService
from stripehooks.webhook import create_webhook_router


logger = logging.getLogger(__name__)


class InitializationState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    VALIDATING = "validating"
    DISCOVERING = "discovering"
    READY = "ready"
    FAILED = "failed"
    DISABLED = "disabled"


MISSING_SECRET_MESSAGE = (
    "missing stripe webhook secret. module is improperly configured and will be "
    "unable to process incoming webhooks from Stripe"
)


class StripeModule(object):
    """Validates config, discovers handlers, and builds the router."""

    def __init__(
        self,
        config: StripeModuleConfig,
        container: ComponentContainer,
        exception_handler: Optional[handlers.HANDLER_EXCEPTION_HANDLER] = None,
    ) -> None:
        self.config = config
        self.container = container
        self._exception_handler = exception_handler

        self._state = InitializationState.UNINITIALIZED
        self._router: Optional[WebhookRouter] = None
        self._webhook_service: Optional[StripeWebhookService] = None
        self._client: Optional[stripe.StripeClient] = None

    @property
    def state(self) -> InitializationState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is InitializationState.READY

    # -----Initialization------------------------------------------------------

    def initialize(self) -> InitializationState:
        """
        Validate the webhook config and build the routing tables.

        Returns:
            InitializationState: READY, or DISABLED when no webhook config was
                given.
        Raises:
            AlreadyInitializedError: If called more than once.
            NoSecretsProvidedError: If webhooks are configured without any
                secret. No discovery is attempted.
            DiscoveryError: If the handler tables cannot be built.
        """
        if self._state is not InitializationState.UNINITIALIZED:
            raise AlreadyInitializedError(
                f"Stripe module already initialized (state: {self._state.value})"
            )

        webhook_config = self.config.webhook_config

        # No webhook config means there is no reason to attempt discovery.
        if webhook_config is None:
            logger.info("No Stripe webhook config provided. Webhooks are disabled")
            self._state = InitializationState.DISABLED
            return self._state

        self._state = InitializationState.VALIDATING
        if not webhook_config.stripe_secrets.has_any():
            logger.error(MISSING_SECRET_MESSAGE)
            self._state = InitializationState.FAILED
            raise NoSecretsProvidedError(MISSING_SECRET_MESSAGE)

        logger.info("Initializing Stripe Module for webhooks")

        self._state = InitializationState.DISCOVERING
        try:
            tables = self._discover_tables(webhook_config)
        except Exception:
            self._state = InitializationState.FAILED
            raise

        self._router = WebhookRouter(
            tables,
            log_matching_event_handlers=(
                webhook_config.logging_configuration.log_matching_event_handlers
            ),
            exception_handler=self._exception_handler,
        )
        self._webhook_service = StripeWebhookService(
            StripePayloadService(webhook_config.stripe_secrets), self._router
        )

        self._state = InitializationState.READY
        return self._state

    def _discover_tables(
        self, webhook_config: WebhookConfig
    ) -> dict[Namespace, DispatchTable]:
        registry = HandlerRegistry(self.container)
        secrets = webhook_config.stripe_secrets

        tables: dict[Namespace, DispatchTable] = {}
        for namespace in ALL_NAMESPACES:
            has_secret = secrets.for_namespace(namespace) is not None

            if not has_secret and not webhook_config.discover_unconfigured_namespaces:
                logger.info(
                    f"No {namespace.value} webhook secret configured. "
                    f"Skipping {namespace.value} handler discovery"
                )
                tables[namespace] = EMPTY_TABLE
                continue

            table = registry.build_table(namespace)
            if not has_secret and table:
                logger.warning(
                    f"Registered {sum(len(b) for b in table.values())} "
                    f"{namespace.value} webhook handlers, but no {namespace.value} "
                    f"secret is configured. They will never be invoked"
                )
            tables[namespace] = table

        return tables

    # -----Accessors-----------------------------------------------------------

    @property
    def router(self) -> WebhookRouter:
        """
        The router, once initialize() has completed.

        Raises:
            RouterNotReadyError: Before READY. Routing before initialization is
                a programming error.
        """
        if self._router is None or not self.ready:
            raise RouterNotReadyError(
                f"Stripe webhook router is not ready (state: {self._state.value})"
            )
        return self._router

    @property
    def webhook_service(self) -> StripeWebhookService:
        """
        The entry point owning the router.

        Raises:
            MissingRouterOwnerError: If webhooks are disabled, so no entry point
                exists to receive a router.
            RouterNotReadyError: Before READY.
        """
        if self._state is InitializationState.DISABLED:
            raise MissingRouterOwnerError(
                "Stripe webhooks are disabled. No webhook service exists to "
                "receive the router"
            )
        if self._webhook_service is None or not self.ready:
            raise RouterNotReadyError(
                f"Stripe webhook service is not ready (state: {self._state.value})"
            )
        return self._webhook_service

    def create_webhook_router(self) -> APIRouter:
        """
        Build the HTTP endpoints under the configured controller prefix.
        The webhook config's dependencies guard every endpoint.
        """
        service = self.webhook_service
        webhook_config = self.config.webhook_config
        return create_webhook_router(
            service,
            prefix=webhook_config.controller_prefix,
            dependencies=webhook_config.dependencies,
        )

    @property
    def client(self) -> stripe.StripeClient:
        """Stripe API client built from the module config, created on first use."""
        if self._client is None:
            self._client = stripe.StripeClient(
                self.config.api_key,
                stripe_version=self.config.api_version,
                **self.config.client_options,
            )
        return self._client
