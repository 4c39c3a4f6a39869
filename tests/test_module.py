"""
Unit tests for module initialization.

Covers the disabled, failed and ready paths, namespace discovery choices, and
the accessors that guard against use before initialization.
"""

import logging
from typing import Any
from typing import Optional
from unittest.mock import patch

import pytest

from conftest import ACCOUNT_SECRET
from conftest import ChargeHandlers
from conftest import InvoiceHandlers
from conftest import make_event

from stripehooks import AlreadyInitializedError
from stripehooks import Container
from stripehooks import DiscoveryError
from stripehooks import InitializationState
from stripehooks import MissingRouterOwnerError
from stripehooks import Namespace
from stripehooks import NoSecretsProvidedError
from stripehooks import RouterNotReadyError
from stripehooks import StripeModule
from stripehooks import StripeModuleConfig
from stripehooks import StripeSecrets
from stripehooks import WebhookConfig
from stripehooks import stripe_webhook_handler
from stripehooks import handlers
from stripehooks.config import DEFAULT_API_VERSION


def make_config(
    account: Optional[str] = None,
    connect: Optional[str] = None,
    **webhook_kwargs: Any,
) -> StripeModuleConfig:
    return StripeModuleConfig(
        api_key="sk_test_123",
        webhook_config=WebhookConfig(
            stripe_secrets=StripeSecrets(account=account, connect=connect),
            **webhook_kwargs,
        ),
    )


def test_no_webhook_config_disables_module() -> None:
    """Test that without a webhook section nothing is discovered."""
    container = Container([InvoiceHandlers()])
    module = StripeModule(StripeModuleConfig(api_key="sk_test_123"), container)

    with patch("stripehooks.module.HandlerRegistry") as registry:
        state = module.initialize()

    assert state is InitializationState.DISABLED
    registry.assert_not_called()
    assert not module.ready


def test_disabled_module_has_no_router_owner() -> None:
    module = StripeModule(StripeModuleConfig(), Container())
    module.initialize()

    with pytest.raises(MissingRouterOwnerError):
        _ = module.webhook_service
    with pytest.raises(RouterNotReadyError):
        _ = module.router


@pytest.mark.parametrize(
    "secrets",
    [StripeSecrets(), StripeSecrets(account="", connect=""), StripeSecrets(account=None)],
)
def test_missing_secrets_fail_without_discovery(
    secrets: StripeSecrets, caplog: pytest.LogCaptureFixture
) -> None:
    """Test that configuring webhooks without any secret is fatal."""
    config = StripeModuleConfig(webhook_config=WebhookConfig(stripe_secrets=secrets))
    module = StripeModule(config, Container([InvoiceHandlers()]))

    with patch("stripehooks.module.HandlerRegistry") as registry:
        with caplog.at_level(logging.ERROR, logger="stripehooks.module"):
            with pytest.raises(NoSecretsProvidedError, match="missing stripe webhook secret"):
                module.initialize()

    registry.assert_not_called()
    assert module.state is InitializationState.FAILED
    assert "missing stripe webhook secret" in caplog.text
    with pytest.raises(RouterNotReadyError):
        _ = module.router


def test_router_before_initialize_fails_fast() -> None:
    module = StripeModule(make_config(account=ACCOUNT_SECRET), Container())

    assert module.state is InitializationState.UNINITIALIZED
    with pytest.raises(RouterNotReadyError, match="uninitialized"):
        _ = module.router
    with pytest.raises(RouterNotReadyError):
        _ = module.webhook_service


def test_initialize_reaches_ready(caplog: pytest.LogCaptureFixture) -> None:
    module = StripeModule(make_config(account=ACCOUNT_SECRET), Container([InvoiceHandlers()]))

    with caplog.at_level(logging.INFO, logger="stripehooks"):
        state = module.initialize()

    assert state is InitializationState.READY
    assert module.ready
    assert module.router.ready
    assert module.webhook_service.router is module.router
    assert "Initializing Stripe Module for webhooks" in caplog.text


def test_initialize_twice_rejected() -> None:
    module = StripeModule(make_config(account=ACCOUNT_SECRET), Container())
    module.initialize()

    with pytest.raises(AlreadyInitializedError):
        module.initialize()


def test_discovery_failure_marks_failed() -> None:
    class Doubled:
        @stripe_webhook_handler("invoice.paid")
        @stripe_webhook_handler("invoice.paid")
        def on_paid(self, event: Any) -> None:
            pass

    module = StripeModule(make_config(account=ACCOUNT_SECRET), Container([Doubled()]))

    with pytest.raises(DiscoveryError):
        module.initialize()

    assert module.state is InitializationState.FAILED


@pytest.mark.asyncio
async def test_only_account_secret_skipping_unconfigured_namespace() -> None:
    """
    Test the account-only scenario with discovery of unconfigured namespaces
    turned off: only the account handler is registered.
    """
    charges = ChargeHandlers()
    module = StripeModule(
        make_config(account="whsec_a", discover_unconfigured_namespaces=False),
        Container([charges]),
    )
    module.initialize()

    assert module.router.get_handler_count(Namespace.ACCOUNT) == 1
    assert module.router.get_handler_count(Namespace.CONNECT) == 0

    await module.router.route_event(make_event("charge.succeeded"), Namespace.ACCOUNT)
    result = await module.router.route_event(
        make_event("charge.succeeded"), Namespace.CONNECT
    )

    assert charges.calls == ["account:charge.succeeded"]
    assert result.handler_count == 0


def test_only_account_secret_discovers_both_by_default(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test that the default still discovers connect handlers, with a warning."""
    module = StripeModule(make_config(account="whsec_a"), Container([ChargeHandlers()]))

    with caplog.at_level(logging.WARNING, logger="stripehooks.module"):
        module.initialize()

    assert module.router.get_handler_count(Namespace.CONNECT) == 1
    assert "no connect secret is configured" in caplog.text


def test_only_connect_secret() -> None:
    module = StripeModule(
        make_config(connect="whsec_c", discover_unconfigured_namespaces=False),
        Container([ChargeHandlers(), InvoiceHandlers()]),
    )
    module.initialize()

    assert module.router.get_handler_count(Namespace.ACCOUNT) == 0
    assert module.router.get_event_types(Namespace.CONNECT) == ["charge.succeeded"]


def test_components_added_after_initialize_are_ignored() -> None:
    container = Container()
    module = StripeModule(make_config(account=ACCOUNT_SECRET), container)
    module.initialize()

    container.register(InvoiceHandlers())

    assert module.router.get_handler_count(Namespace.ACCOUNT) == 0


def test_logging_flag_reaches_router() -> None:
    module = StripeModule(
        StripeModuleConfig.from_dict(
            {
                "webhookConfig": {
                    "stripeSecrets": {"account": ACCOUNT_SECRET},
                    "loggingConfiguration": {"logMatchingEventHandlers": True},
                }
            }
        ),
        Container(),
    )
    module.initialize()

    assert module.router.log_matching_event_handlers is True


@pytest.mark.asyncio
async def test_exception_handler_reaches_router() -> None:
    class Broken:
        @stripe_webhook_handler("invoice.paid")
        def explode(self, event: Any) -> None:
            raise ValueError("boom")

    module = StripeModule(
        make_config(account=ACCOUNT_SECRET),
        Container([Broken()]),
        exception_handler=handlers.collect_handler_exception,
    )
    module.initialize()

    await module.router.handle_webhook(make_event("invoice.paid"))

    assert handlers.exceptions_caught[0]["handler"] == "Broken.explode"


def test_client_built_from_config() -> None:
    module = StripeModule(
        StripeModuleConfig(api_key="sk_test_123", api_version="2023-10-16"),
        Container(),
    )

    with patch("stripehooks.module.stripe.StripeClient") as client_cls:
        client = module.client
        assert module.client is client

    client_cls.assert_called_once_with("sk_test_123", stripe_version="2023-10-16")


def test_client_receives_client_options() -> None:
    module = StripeModule(
        StripeModuleConfig(
            api_key="sk_test_123",
            client_options={"max_network_retries": 3},
        ),
        Container(),
    )

    with patch("stripehooks.module.stripe.StripeClient") as client_cls:
        module.client

    client_cls.assert_called_once_with(
        "sk_test_123", stripe_version=DEFAULT_API_VERSION, max_network_retries=3
    )
