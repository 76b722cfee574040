"""Sign-in, sign-out and session endpoints."""

import hmac
import logging
import secrets

from aiohttp import web

from paywall.errors import SignInError
from paywall.identity.github import GitHubIdentityProvider
from paywall.identity.session import clear_session, current_user, set_session

logger = logging.getLogger(__name__)

STATE_COOKIE = "paywall_oauth_state"
STATE_MAX_AGE = 600

SIGN_IN_PATH = "/auth/signin/github"
CALLBACK_PATH = "/auth/callback/github"
SIGN_OUT_PATH = "/auth/signout"
SESSION_PATH = "/api/session"


def _redirect(location: str) -> web.Response:
    return web.Response(status=302, headers={"Location": location})


def _secure_cookies(request: web.Request) -> bool:
    return request.app["config"].env != "dev"


async def sign_in(request: web.Request) -> web.Response:
    """Begin sign-in: remember a random state and redirect to the provider."""
    provider: GitHubIdentityProvider = request.app["identity"]
    state = secrets.token_urlsafe(32)

    response = _redirect(provider.authorize_url(state))
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_MAX_AGE,
        httponly=True,
        samesite="Lax",
        secure=_secure_cookies(request),
    )
    return response


async def sign_in_callback(request: web.Request) -> web.Response:
    """Complete sign-in and start a session.

    Failures are not retried; the browser lands back on the home page with an
    error flag.
    """
    provider: GitHubIdentityProvider = request.app["identity"]
    expected = request.cookies.get(STATE_COOKIE, "")
    state = request.query.get("state", "")
    code = request.query.get("code")

    failed = _redirect("/?error=signin")
    failed.del_cookie(STATE_COOKIE)

    if not expected or not hmac.compare_digest(expected, state):
        logger.warning("OAuth state mismatch - sign-in aborted")
        return failed
    if not code:
        logger.warning(f"OAuth callback without code: {request.query.get('error', 'unknown')}")
        return failed

    try:
        user = await provider.fetch_user(code)
    except SignInError as e:
        logger.error(f"Sign-in with {provider.name} failed: {e}")
        return failed

    logger.info(f"User {user.login} ({user.id}) signed in")

    response = _redirect("/")
    response.del_cookie(STATE_COOKIE)
    set_session(response, request.app["session_codec"], user, secure=_secure_cookies(request))
    return response


async def sign_out(request: web.Request) -> web.Response:
    user = current_user(request)
    if user:
        logger.info(f"User {user.login} signed out")
    response = _redirect("/")
    clear_session(response)
    return response


async def session_info(request: web.Request) -> web.Response:
    """Report who is signed in and whether they hold an active subscription."""
    user = current_user(request)
    if user is None:
        return web.json_response({"user": None, "activeSubscription": False})

    active = await request.app["repository"].has_active_subscription(user.id)
    return web.json_response({"user": user.to_dict(), "activeSubscription": active})


def setup_routes(app: web.Application) -> None:
    app.router.add_get(SIGN_IN_PATH, sign_in)
    app.router.add_get(CALLBACK_PATH, sign_in_callback)
    app.router.add_get(SIGN_OUT_PATH, sign_out)
    app.router.add_post(SIGN_OUT_PATH, sign_out)
    app.router.add_get(SESSION_PATH, session_info)
