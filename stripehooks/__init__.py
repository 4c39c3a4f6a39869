"""
# stripehooks

Routes verified Stripe webhook events to handler methods on application
components.

Handlers are tagged with @stripe_webhook_handler or
@stripe_connect_webhook_handler, discovered once at boot by StripeModule, and
invoked concurrently by the WebhookRouter whenever an event of their type
arrives. A failing handler is logged and never affects its siblings or the
response sent back to Stripe.
"""

from stripehooks.binding import DispatchTable
from stripehooks.binding import HandlerBinding
from stripehooks.config import LoggingConfiguration
from stripehooks.config import StripeModuleConfig
from stripehooks.config import StripeSecrets
from stripehooks.config import WebhookConfig
from stripehooks.decorators import STRIPE_CONNECT_WEBHOOK_HANDLER
from stripehooks.decorators import STRIPE_WEBHOOK_HANDLER
from stripehooks.decorators import stripe_connect_webhook_handler
from stripehooks.decorators import stripe_webhook_handler
from stripehooks.discovery import ComponentContainer
from stripehooks.discovery import Container
from stripehooks.exceptions import AlreadyInitializedError
from stripehooks.exceptions import ConfigError
from stripehooks.exceptions import DiscoveryError
from stripehooks.exceptions import DuplicateHandlerError
from stripehooks.exceptions import HandlerInvocationError
from stripehooks.exceptions import MissingRouterOwnerError
from stripehooks.exceptions import NoSecretsProvidedError
from stripehooks.exceptions import RouterNotReadyError
from stripehooks.exceptions import StripeHooksError
from stripehooks.exceptions import VerificationError
from stripehooks.module import InitializationState
from stripehooks.module import StripeModule
from stripehooks.namespaces import Namespace
from stripehooks.payload import StripePayloadService
from stripehooks.registry import HandlerRegistry
from stripehooks.router import DispatchResult
from stripehooks.router import WebhookRouter
from stripehooks.webhook import StripeWebhookService
from stripehooks.webhook import create_webhook_router


version_major = 1
version_minor = 0
version_patch = 0
__version__ = f"{version_major}.{version_minor}.{version_patch}"

__all__ = [
    "AlreadyInitializedError",
    "ComponentContainer",
    "ConfigError",
    "Container",
    "DiscoveryError",
    "DispatchResult",
    "DispatchTable",
    "DuplicateHandlerError",
    "HandlerBinding",
    "HandlerInvocationError",
    "HandlerRegistry",
    "InitializationState",
    "LoggingConfiguration",
    "MissingRouterOwnerError",
    "Namespace",
    "NoSecretsProvidedError",
    "RouterNotReadyError",
    "STRIPE_CONNECT_WEBHOOK_HANDLER",
    "STRIPE_WEBHOOK_HANDLER",
    "StripeHooksError",
    "StripeModule",
    "StripeModuleConfig",
    "StripePayloadService",
    "StripeSecrets",
    "StripeWebhookService",
    "VerificationError",
    "WebhookConfig",
    "WebhookRouter",
    "create_webhook_router",
    "stripe_connect_webhook_handler",
    "stripe_webhook_handler",
]
