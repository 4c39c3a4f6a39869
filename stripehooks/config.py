"""
Module configuration.

The configuration mirrors the shape applications already hand to a Stripe
module: an API key for the client, and an optional webhook section holding one
signing secret per namespace. When the webhook section is absent the module
runs with webhooks disabled.
"""

import os
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Union

from stripehooks.namespaces import Namespace


DEFAULT_API_VERSION = "2022-08-01"
DEFAULT_CONTROLLER_PREFIX = "stripe"

_TRUTHY = {"1", "true", "yes", "on"}


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, so camelCase and snake_case both load."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _flag(value: Any, default: bool) -> bool:
    """Read a boolean switch. Strings such as "false" or "0" load as False."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


@dataclass(frozen=True)
class StripeSecrets(object):
    """Signing secrets, one per webhook namespace."""

    account: Optional[str] = None
    """Secret for primary account webhooks."""

    connect: Optional[str] = None
    """Secret for Connect webhooks."""

    def for_namespace(self, namespace: Union[Namespace, str]) -> Optional[str]:
        if Namespace.coerce(namespace) is Namespace.CONNECT:
            return self.connect or None
        return self.account or None

    def has_any(self) -> bool:
        return bool(self.account) or bool(self.connect)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StripeSecrets":
        return cls(account=data.get("account"), connect=data.get("connect"))


@dataclass(frozen=True)
class LoggingConfiguration(object):
    """Verbosity switches for the dispatch path."""

    log_matching_event_handlers: bool = False
    """If True, log how many handlers each incoming event is forwarded to."""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LoggingConfiguration":
        return cls(
            log_matching_event_handlers=_flag(
                _pick(data, "log_matching_event_handlers", "logMatchingEventHandlers"),
                default=False,
            )
        )


@dataclass(frozen=True)
class WebhookConfig(object):
    """Webhook section of the module configuration."""

    stripe_secrets: StripeSecrets = field(default_factory=StripeSecrets)

    logging_configuration: LoggingConfiguration = field(
        default_factory=LoggingConfiguration
    )

    controller_prefix: str = DEFAULT_CONTROLLER_PREFIX
    """Path prefix the HTTP endpoints are mounted under."""

    discover_unconfigured_namespaces: bool = True
    """
    Discover handlers for a namespace even when its secret is missing.
    Such a table can never be reached, since no event for that namespace can
    be verified, but this matches the historical behavior of discovering both.
    """

    dependencies: Sequence[Any] = ()
    """
    FastAPI dependencies (e.g. Depends(verify_ip)) applied to every webhook
    endpoint, such as an allow list or a rate limiter.
    """

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WebhookConfig":
        secrets = _pick(data, "stripe_secrets", "stripeSecrets", default={}) or {}
        logging_config = (
            _pick(data, "logging_configuration", "loggingConfiguration", default={})
            or {}
        )
        return cls(
            stripe_secrets=StripeSecrets.from_dict(secrets),
            logging_configuration=LoggingConfiguration.from_dict(logging_config),
            controller_prefix=_pick(
                data,
                "controller_prefix",
                "controllerPrefix",
                default=DEFAULT_CONTROLLER_PREFIX,
            )
            or DEFAULT_CONTROLLER_PREFIX,
            discover_unconfigured_namespaces=_flag(
                _pick(
                    data,
                    "discover_unconfigured_namespaces",
                    "discoverUnconfiguredNamespaces",
                ),
                default=True,
            ),
            dependencies=tuple(_pick(data, "dependencies", default=()) or ()),
        )


@dataclass(frozen=True)
class StripeModuleConfig(object):
    """Top level configuration handed to StripeModule."""

    api_key: str = ""
    api_version: str = DEFAULT_API_VERSION
    webhook_config: Optional[WebhookConfig] = None

    client_options: Mapping[str, Any] = field(default_factory=dict)
    """Extra keyword arguments for stripe.StripeClient (max_network_retries, ...)."""

    @property
    def webhooks_enabled(self) -> bool:
        return self.webhook_config is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StripeModuleConfig":
        """
        Build a config from a nested mapping.

        Args:
            data (Mapping[str, Any]): Keys may be snake_case or camelCase
                (apiKey, webhookConfig, stripeSecrets, clientOptions, ...).
        Returns:
            StripeModuleConfig: The parsed configuration.
        """
        webhook_data = _pick(data, "webhook_config", "webhookConfig")
        return cls(
            api_key=_pick(data, "api_key", "apiKey", default="") or "",
            api_version=_pick(
                data, "api_version", "apiVersion", default=DEFAULT_API_VERSION
            )
            or DEFAULT_API_VERSION,
            webhook_config=(
                WebhookConfig.from_dict(webhook_data)
                if webhook_data is not None
                else None
            ),
            client_options=dict(
                _pick(data, "client_options", "clientOptions", default={}) or {}
            ),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StripeModuleConfig":
        """
        Build a config from environment variables.

        The webhook section is only created when at least one of
        STRIPE_WEBHOOK_SECRET or STRIPE_CONNECT_WEBHOOK_SECRET is defined, even
        if empty, so an explicitly blank secret still fails validation.
        """
        env = os.environ if environ is None else environ

        webhook_config = None
        if "STRIPE_WEBHOOK_SECRET" in env or "STRIPE_CONNECT_WEBHOOK_SECRET" in env:
            webhook_config = WebhookConfig(
                stripe_secrets=StripeSecrets(
                    account=env.get("STRIPE_WEBHOOK_SECRET") or None,
                    connect=env.get("STRIPE_CONNECT_WEBHOOK_SECRET") or None,
                ),
                logging_configuration=LoggingConfiguration(
                    log_matching_event_handlers=(
                        env.get("STRIPE_WEBHOOK_LOG_MATCHING_HANDLERS", "").lower()
                        in _TRUTHY
                    )
                ),
                controller_prefix=env.get("STRIPE_WEBHOOK_PREFIX")
                or DEFAULT_CONTROLLER_PREFIX,
            )

        return cls(
            api_key=env.get("STRIPE_API_KEY", ""),
            api_version=env.get("STRIPE_API_VERSION") or DEFAULT_API_VERSION,
            webhook_config=webhook_config,
        )
