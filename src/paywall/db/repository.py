"""Persistence for Stripe customers and the local subscription record."""

from typing import Optional

import asyncpg

from paywall.db.models import SubscriptionStatus, Table


class SubscriptionRepository:
    """asyncpg-backed store for customers and subscriptions.

    Every write is an upsert, so replaying the same call leaves the same row.
    """

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def get_customer_id(self, user_id: str) -> Optional[str]:
        """Return the Stripe customer ID for a user, or None if none exists yet."""
        async with self._pool.acquire() as conn:
            return await conn.fetchval(
                f"SELECT stripe_customer_id FROM {Table.CUSTOMERS} WHERE user_id = $1",
                user_id,
            )

    async def save_customer(self, user_id: str, customer_id: str) -> None:
        """Link a user to their Stripe customer."""
        async with self._pool.acquire() as conn:
            await conn.execute(
                f"""
                INSERT INTO {Table.CUSTOMERS} (user_id, stripe_customer_id)
                VALUES ($1, $2)
                ON CONFLICT (user_id) DO UPDATE SET
                    stripe_customer_id = EXCLUDED.stripe_customer_id
                """,
                user_id,
                customer_id,
            )

    async def upsert_subscription(
        self,
        subscription_id: str,
        customer_id: str,
        status: SubscriptionStatus,
    ) -> None:
        """Create or overwrite the subscription record for a customer.

        The owning user is resolved from the customers table in the same
        statement. A user already on the row is kept if the lookup misses.

        Args:
            subscription_id: Stripe subscription ID
            customer_id: Stripe customer ID (row key)
            status: New status

        Raises:
            asyncpg.PostgresError: On database errors
        """
        async with self._pool.acquire() as conn:
            await conn.execute(
                f"""
                INSERT INTO {Table.SUBSCRIPTIONS}
                    (stripe_customer_id, stripe_subscription_id, user_id, status)
                VALUES (
                    $1,
                    $2,
                    (SELECT user_id FROM {Table.CUSTOMERS} WHERE stripe_customer_id = $1),
                    $3
                )
                ON CONFLICT (stripe_customer_id) DO UPDATE SET
                    stripe_subscription_id = EXCLUDED.stripe_subscription_id,
                    user_id = COALESCE(EXCLUDED.user_id, {Table.SUBSCRIPTIONS}.user_id),
                    status = EXCLUDED.status,
                    updated_at = now()
                """,
                customer_id,
                subscription_id,
                status.value,
            )

    async def has_active_subscription(self, user_id: str) -> bool:
        """Return True if the user owns an active subscription."""
        async with self._pool.acquire() as conn:
            found = await conn.fetchval(
                f"""
                SELECT EXISTS (
                    SELECT 1 FROM {Table.SUBSCRIPTIONS}
                    WHERE user_id = $1 AND status = $2
                )
                """,
                user_id,
                SubscriptionStatus.ACTIVE.value,
            )
        return bool(found)
