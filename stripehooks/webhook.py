"""
Webhook entry point.

StripeWebhookService is the boundary between transport and routing: it
verifies a raw delivery and hands the resulting event to the router.
create_webhook_router() exposes it over HTTP as a FastAPI router.

Handler outcomes never change the response. Stripe gets an acknowledgement for
every verified delivery, and a 400 for deliveries that fail verification.
"""

import logging
from typing import Optional
from typing import Sequence
from typing import Union

from fastapi import APIRouter
from fastapi import HTTPException
from fastapi import Request
from fastapi import params

from stripehooks.config import DEFAULT_CONTROLLER_PREFIX
from stripehooks.exceptions import VerificationError
from stripehooks.namespaces import Namespace
from stripehooks.payload import StripePayloadService
from stripehooks.router import DispatchResult
from stripehooks.router import WebhookRouter


logger = logging.getLogger(__name__)


SIGNATURE_HEADER = "stripe-signature"


class StripeWebhookService(object):
    """Verifies deliveries, then routes them."""

    def __init__(
        self, payload_service: StripePayloadService, router: WebhookRouter
    ) -> None:
        self.payload_service = payload_service
        self.router = router

    async def handle(
        self,
        payload: Union[bytes, str],
        signature: str,
        namespace: Union[Namespace, str] = Namespace.ACCOUNT,
    ) -> DispatchResult:
        """
        Verify one delivery and dispatch it.

        Raises:
            VerificationError: If the payload cannot be verified. The router is
                not reached in that case.
        """
        event = self.payload_service.try_hydrate_payload(signature, payload, namespace)
        return await self.router.route_event(event, namespace)


def create_webhook_router(
    service: StripeWebhookService,
    prefix: str = DEFAULT_CONTROLLER_PREFIX,
    dependencies: Optional[Sequence[params.Depends]] = None,
) -> APIRouter:
    """
    Build the HTTP endpoints for both namespaces.

    Routes:
        POST /{prefix}/webhook          primary account events
        POST /{prefix}/webhook/connect  Connect events

    Args:
        service (StripeWebhookService): Verifies and routes deliveries.
        prefix (str): Path prefix. Surrounding slashes are ignored and an
            empty prefix falls back to the default.
        dependencies (Optional[Sequence[Depends]]): Extra FastAPI dependencies
            applied to both endpoints, e.g. IP allow-listing.
    Returns:
        APIRouter: Ready to include in an application.
    """
    router = APIRouter(
        prefix=f"/{prefix.strip('/') or DEFAULT_CONTROLLER_PREFIX}",
        dependencies=list(dependencies or []),
    )

    async def _receive(request: Request, namespace: Namespace) -> dict:
        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature:
            raise HTTPException(status_code=400, detail="Missing stripe-signature header")

        body = await request.body()
        try:
            await service.handle(body, signature, namespace)
        except VerificationError:
            raise HTTPException(status_code=400, detail="Invalid webhook payload") from None

        return {"received": True}

    @router.post("/webhook")
    async def stripe_webhook(request: Request) -> dict:
        return await _receive(request, Namespace.ACCOUNT)

    @router.post("/webhook/connect")
    async def stripe_connect_webhook(request: Request) -> dict:
        return await _receive(request, Namespace.CONNECT)

    return router
