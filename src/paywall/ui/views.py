"""Home page composing the sign-in and subscribe buttons."""

from aiohttp import web

from paywall.identity.session import current_user
from paywall.payments.routes import PORTAL_PATH
from paywall.ui.buttons import render_sign_in_button, render_subscribe_button, templates


async def home(request: web.Request) -> web.Response:
    config = request.app["config"]
    user = current_user(request)

    active = False
    if user is not None:
        active = await request.app["repository"].has_active_subscription(user.id)

    html = templates.get_template("home.html").render(
        title="Subscribe",
        publishable_key=config.stripe_publishable_key,
        sign_in_button=render_sign_in_button(user),
        subscribe_buttons=[
            render_subscribe_button(price_id, config.stripe_publishable_key)
            for price_id in config.stripe_price_ids
        ],
        active_subscription=active,
        portal_url=PORTAL_PATH,
        error=request.query.get("error"),
    )
    return web.Response(text=html, content_type="text/html")


def setup_routes(app: web.Application) -> None:
    app.router.add_get("/", home)
