"""Subscription state reconciliation from verified Stripe events."""

import logging

import asyncpg

from paywall.db.models import SubscriptionStatus
from paywall.db.repository import SubscriptionRepository
from paywall.errors import ReconcileError

logger = logging.getLogger(__name__)


class SubscriptionReconciler:
    """Upserts the local subscription record for a customer."""

    def __init__(self, repository: SubscriptionRepository):
        self.repository = repository

    async def reconcile(self, subscription_id: str, customer_id: str, active: bool) -> None:
        """
        Record the current state of a subscription.

        Creates the customer's record on first call and overwrites status and
        subscription ID afterwards, so duplicate deliveries are harmless.

        Args:
            subscription_id: Stripe subscription ID
            customer_id: Stripe customer ID
            active: Whether the subscription grants access

        Raises:
            ReconcileError: If the record could not be written
        """
        status = SubscriptionStatus.from_active(active)
        try:
            await self.repository.upsert_subscription(subscription_id, customer_id, status)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise ReconcileError(
                f"Could not save subscription {subscription_id} for {customer_id}: {e}"
            ) from e

        logger.info(
            f"Reconciled subscription {subscription_id}: "
            f"customer={customer_id}, status={status.value}"
        )
