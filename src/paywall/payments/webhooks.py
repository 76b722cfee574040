"""Stripe webhook handler and event processing."""

import logging
from typing import Mapping, Optional

import stripe
from aiohttp import web

from paywall.errors import ConfigurationError, UnhandledEventError
from paywall.payments.events import DISPATCH, RELEVANT_EVENTS, EventRoute, reconcile_args
from paywall.payments.reconcile import SubscriptionReconciler

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Stripe-Signature"


def _webhook_error(message: str) -> web.Response:
    return web.Response(status=400, text=f"Webhook error: {message}")


def _unpack_event(event: dict) -> tuple[str, dict]:
    """Return (type, data.object) from a plain-dict event envelope."""
    event_type = event.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise ValueError("event has no type")
    obj = (event.get("data") or {}).get("object")
    if not isinstance(obj, dict):
        raise ValueError(f"{event_type} has no data object")
    return event_type, obj


class WebhookHandler:
    """Verifies Stripe events and dispatches relevant ones to the reconciler.

    Responses:
        200 {"ok": true}: event processed or not relevant
        400 "Webhook error: ...": missing/invalid signature or payload
        500 {"error": ...}: processing failed; Stripe will redeliver
    """

    def __init__(
        self,
        secret: str,
        reconciler: SubscriptionReconciler,
        relevant_events: frozenset[str] = RELEVANT_EVENTS,
        dispatch: Mapping[str, EventRoute] = DISPATCH,
    ):
        if not secret:
            raise ConfigurationError("stripe_webhook_secret not configured")
        self._secret = secret
        self.reconciler = reconciler
        self.relevant_events = relevant_events
        self.dispatch = dispatch

    async def handle(self, payload: bytes, sig_header: Optional[str]) -> web.Response:
        """
        Verify and process one webhook delivery.

        Args:
            payload: Raw request body, exactly as received
            sig_header: Stripe-Signature header value

        Returns:
            aiohttp.web.Response
        """
        if not sig_header:
            logger.error(f"Missing {SIGNATURE_HEADER} header")
            return _webhook_error(f"missing {SIGNATURE_HEADER} header")

        try:
            event = stripe.Webhook.construct_event(payload, sig_header, self._secret)
            envelope = event.to_dict()
            event_type, obj = _unpack_event(envelope)
        except (ValueError, TypeError, AttributeError) as e:
            # A signed body that is not a JSON event object
            logger.error(f"Invalid webhook payload: {e}")
            return _webhook_error(f"invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            logger.error("Invalid webhook signature")
            return _webhook_error(str(e))

        if event_type not in self.relevant_events:
            logger.info(f"Ignoring webhook event: {event_type}")
            return web.json_response({"ok": True})

        logger.info(f"Received webhook: {event_type} ({envelope.get('id')})")

        try:
            await self._dispatch(event_type, obj)
        except Exception as e:
            logger.exception(f"Error processing webhook {event_type}: {e}")
            # 5xx so Stripe retries the delivery
            return web.json_response({"error": "Webhook handler failed"}, status=500)

        return web.json_response({"ok": True})

    async def _dispatch(self, event_type: str, obj: Mapping) -> None:
        route = self.dispatch.get(event_type)
        if route is None:
            raise UnhandledEventError(event_type)

        args = reconcile_args(route, obj)
        if args is None:
            logger.info(f"{event_type} carries no subscription - skipping")
            return

        await self.reconciler.reconcile(args.subscription_id, args.customer_id, args.active)


async def webhook_endpoint(request: web.Request) -> web.Response:
    """Handle /api/webhooks.

    Only POST is processed; any other method is refused before the body is
    read.
    """
    if request.method != "POST":
        return web.Response(
            status=405,
            headers={"Allow": "POST"},
            text="Method not allowed",
        )

    # Signature is computed over the exact bytes Stripe sent
    payload = await request.read()
    handler: WebhookHandler = request.app["webhook_handler"]
    return await handler.handle(payload, request.headers.get(SIGNATURE_HEADER))
