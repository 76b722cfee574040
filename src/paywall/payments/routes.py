"""Backend-for-frontend payment endpoints and webhook route."""

import logging

from aiohttp import web

from paywall.errors import CheckoutError, UnknownPriceError
from paywall.identity.session import current_user
from paywall.payments.checkout import CheckoutClient
from paywall.payments.webhooks import webhook_endpoint

logger = logging.getLogger(__name__)

SUBSCRIBE_PATH = "/subscribe"
PORTAL_PATH = "/billing-portal"
WEBHOOK_PATH = "/api/webhooks"


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def subscribe(request: web.Request) -> web.Response:
    """Create a Checkout Session for the signed-in user.

    Body: ``{"priceId": "<stripe price id>"}``. Returns ``{"sessionId", "url"}``,
    or 409 if the user already has an active subscription.
    """
    user = current_user(request)
    if user is None:
        return _error("Sign in required", 401)

    try:
        body = await request.json()
    except ValueError:
        return _error("Request body must be JSON", 400)

    price_id = body.get("priceId") if isinstance(body, dict) else None
    if not price_id or not isinstance(price_id, str):
        return _error("priceId is required", 400)

    # One subscription record per customer; a second one would overwrite it
    if await request.app["repository"].has_active_subscription(user.id):
        return _error("Subscription already active", 409)

    checkout: CheckoutClient = request.app["checkout"]
    try:
        session = await checkout.create_checkout_session(user, price_id)
    except UnknownPriceError as e:
        return _error(str(e), 400)
    except CheckoutError as e:
        logger.error(f"Checkout for user {user.id} failed: {e}")
        return _error(str(e), 502)

    return web.json_response({"sessionId": session.id, "url": session.url})


async def billing_portal(request: web.Request) -> web.Response:
    user = current_user(request)
    if user is None:
        return _error("Sign in required", 401)

    checkout: CheckoutClient = request.app["checkout"]
    try:
        url = await checkout.create_portal_session(user)
    except CheckoutError as e:
        logger.error(f"Billing portal for user {user.id} failed: {e}")
        return _error(str(e), 502)

    if url is None:
        return _error("No billing account for this user", 404)
    return web.json_response({"url": url})


def setup_routes(app: web.Application) -> None:
    app.router.add_post(SUBSCRIBE_PATH, subscribe)
    app.router.add_post(PORTAL_PATH, billing_portal)
    # All methods reach the handler so it can answer 405 with Allow itself
    app.router.add_route("*", WEBHOOK_PATH, webhook_endpoint)
