"""
Payload verification.

Turns a raw webhook delivery into a stripe.Event by checking its signature
against the secret of the namespace it was delivered to.
"""

import logging
from typing import Union

import stripe

from stripehooks.config import StripeSecrets
from stripehooks.exceptions import VerificationError
from stripehooks.namespaces import Namespace


logger = logging.getLogger(__name__)


class StripePayloadService(object):
    """Verifies webhook payloads with the Stripe SDK."""

    def __init__(self, secrets: StripeSecrets) -> None:
        self._secrets = secrets

    def try_hydrate_payload(
        self,
        signature: str,
        payload: Union[bytes, str],
        namespace: Union[Namespace, str] = Namespace.ACCOUNT,
    ) -> stripe.Event:
        """
        Verify and decode a webhook delivery.

        Args:
            signature (str): Value of the stripe-signature header.
            payload (bytes): The raw, unparsed request body.
            namespace (Namespace): Selects which secret signs the payload.
        Returns:
            stripe.Event: The decoded event.
        Raises:
            VerificationError: If no secret is configured for the namespace,
                the signature does not match, or the payload is not valid JSON.
        """
        namespace = Namespace.coerce(namespace)
        secret = self._secrets.for_namespace(namespace)
        if not secret:
            raise VerificationError(
                f"No webhook secret configured for the {namespace.value} namespace"
            )

        try:
            return stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Invalid {namespace.value} webhook signature: {e}")
            raise VerificationError(f"Invalid webhook signature: {e}") from e
        except ValueError as e:
            logger.warning(f"Malformed {namespace.value} webhook payload: {e}")
            raise VerificationError(f"Malformed webhook payload: {e}") from e
