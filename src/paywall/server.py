"""aiohttp application assembly."""

import logging
from typing import Optional

from aiohttp import web

from paywall.config.settings import AppConfig
from paywall.db.pool import close_pool, create_pool
from paywall.db.repository import SubscriptionRepository
from paywall.db.schema.migrate import migrate
from paywall.identity import routes as identity_routes
from paywall.identity.github import GitHubIdentityProvider
from paywall.identity.session import SessionCodec
from paywall.payments import routes as payment_routes
from paywall.payments.checkout import CheckoutClient
from paywall.payments.reconcile import SubscriptionReconciler
from paywall.payments.webhooks import WebhookHandler
from paywall.ui import views

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig,
    *,
    repository: SubscriptionRepository,
    identity: Optional[GitHubIdentityProvider] = None,
    checkout: Optional[CheckoutClient] = None,
    reconciler: Optional[SubscriptionReconciler] = None,
) -> web.Application:
    """Create the application with all routes.

    Collaborators not passed in are built from config.

    Raises:
        ConfigurationError: If a required secret is missing
    """
    if identity is None:
        identity = GitHubIdentityProvider(
            client_id=config.github_client_id,
            client_secret=config.github_client_secret.get_secret_value(),
            redirect_uri=config.public_base_url.rstrip("/") + identity_routes.CALLBACK_PATH,
        )
    if checkout is None:
        checkout = CheckoutClient(
            api_key=config.stripe_secret.get_secret_value(),
            price_ids=config.stripe_price_ids,
            success_url=config.checkout_success_url,
            cancel_url=config.checkout_cancel_url,
            portal_return_url=config.billing_portal_return_url,
            repository=repository,
        )
    if reconciler is None:
        reconciler = SubscriptionReconciler(repository)

    app = web.Application()
    app["config"] = config
    app["repository"] = repository
    app["identity"] = identity
    app["checkout"] = checkout
    app["session_codec"] = SessionCodec(
        config.session_secret.get_secret_value(),
        config.session_max_age_seconds,
    )
    app["webhook_handler"] = WebhookHandler(
        config.stripe_webhook_secret.get_secret_value(),
        reconciler,
    )

    views.setup_routes(app)
    identity_routes.setup_routes(app)
    payment_routes.setup_routes(app)

    return app


async def build_app(config: AppConfig) -> web.Application:
    """Create the pool, apply migrations and return the wired application."""
    pool = await create_pool(str(config.db_dsn), config.db_pool_min, config.db_pool_max)
    try:
        applied = await migrate(pool)
        if applied:
            logger.info(f"Applied {applied} pending migration(s)")
        app = create_app(config, repository=SubscriptionRepository(pool))
    except Exception:
        await close_pool(pool)
        raise

    async def _close(app: web.Application) -> None:
        await close_pool(pool)

    app.on_cleanup.append(_close)
    return app
