"""Stripe Checkout session creation for subscription signup."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable

import stripe

from paywall.db.repository import SubscriptionRepository
from paywall.errors import CheckoutError, ConfigurationError, UnknownPriceError
from paywall.identity.github import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    """Hosted checkout session handed to Stripe.js."""

    id: str
    url: str | None


class CheckoutClient:
    """Creates Stripe customers, Checkout Sessions and billing-portal sessions.

    The API key and sellable prices are fixed at construction; nothing is read
    from module-level Stripe state. The SDK blocks, so each call runs in a
    worker thread.
    """

    def __init__(
        self,
        api_key: str,
        price_ids: Iterable[str],
        success_url: str,
        cancel_url: str,
        portal_return_url: str,
        repository: SubscriptionRepository,
    ):
        if not api_key:
            raise ConfigurationError("stripe_secret not configured")
        self._api_key = api_key
        self.price_ids = frozenset(price_ids)
        self.success_url = success_url
        self.cancel_url = cancel_url
        self.portal_return_url = portal_return_url
        self.repository = repository

    async def ensure_customer(self, user: User) -> str:
        """Return the user's Stripe customer ID, creating the customer on first use.

        Raises:
            CheckoutError: On Stripe API errors
        """
        customer_id = await self.repository.get_customer_id(user.id)
        if customer_id:
            return customer_id

        try:
            customer = await asyncio.to_thread(
                stripe.Customer.create,
                api_key=self._api_key,
                name=user.name,
                metadata={"user_id": user.id, "login": user.login},
                idempotency_key=f"paywall-customer-{user.id}",
            )
        except stripe.StripeError as e:
            raise CheckoutError(f"Could not create customer: {e.user_message or e}") from e

        await self.repository.save_customer(user.id, customer.id)
        logger.info(f"Created Stripe customer {customer.id} for user {user.id}")
        return customer.id

    async def create_checkout_session(self, user: User, price_id: str) -> CheckoutSession:
        """
        Create a subscription-mode Checkout Session for one unit of a price.

        Args:
            user: Signed-in user paying for the subscription
            price_id: Stripe price identifier chosen by the caller

        Returns:
            CheckoutSession with the token for Stripe.js redirection

        Raises:
            UnknownPriceError: If price_id is not in the configured set
            CheckoutError: On Stripe API errors
        """
        if price_id not in self.price_ids:
            raise UnknownPriceError(price_id)

        customer_id = await self.ensure_customer(user)

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self._api_key,
                mode="subscription",
                customer=customer_id,
                client_reference_id=user.id,
                payment_method_types=["card"],
                billing_address_collection="required",
                line_items=[
                    {
                        "price": price_id,
                        "quantity": 1,
                    }
                ],
                allow_promotion_codes=True,
                success_url=self.success_url,
                cancel_url=self.cancel_url,
            )
        except stripe.StripeError as e:
            raise CheckoutError(f"Could not create checkout session: {e.user_message or e}") from e

        logger.info(f"Created checkout session {session.id} for user {user.id} (price {price_id})")

        return CheckoutSession(id=session.id, url=session.url)

    async def create_portal_session(self, user: User) -> str | None:
        """Return a billing-portal URL, or None if the user was never a customer.

        Raises:
            CheckoutError: On Stripe API errors
        """
        customer_id = await self.repository.get_customer_id(user.id)
        if not customer_id:
            return None

        try:
            portal = await asyncio.to_thread(
                stripe.billing_portal.Session.create,
                api_key=self._api_key,
                customer=customer_id,
                return_url=self.portal_return_url,
            )
        except stripe.StripeError as e:
            raise CheckoutError(f"Could not open billing portal: {e.user_message or e}") from e

        return portal.url
