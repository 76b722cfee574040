"""Presentational sign-in and subscribe buttons."""

from typing import Optional

from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup

from paywall.identity.github import User
from paywall.identity.routes import SIGN_IN_PATH, SIGN_OUT_PATH
from paywall.payments.routes import SUBSCRIBE_PATH

templates = Environment(
    loader=PackageLoader("paywall.ui", "templates"),
    autoescape=select_autoescape(["html"]),
)


def render_sign_in_button(user: Optional[User]) -> Markup:
    """Signed-in visitors see their name and a sign-out control; others a sign-in link."""
    template = templates.get_template("sign_in_button.html")
    return Markup(
        template.render(
            user=user,
            sign_in_url=SIGN_IN_PATH,
            sign_out_url=SIGN_OUT_PATH,
        )
    )


def render_subscribe_button(price_id: str, publishable_key: str, label: str = "Subscribe now") -> Markup:
    """Button that starts checkout for one price.

    Anonymous visitors are sent to sign in instead; errors surface as an alert.
    """
    template = templates.get_template("subscribe_button.html")
    return Markup(
        template.render(
            price_id=price_id,
            publishable_key=publishable_key,
            label=label,
            subscribe_url=SUBSCRIBE_PATH,
            sign_in_url=SIGN_IN_PATH,
        )
    )
