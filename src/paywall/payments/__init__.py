"""Stripe checkout and subscription reconciliation.

Handles checkout session creation, webhook verification and dispatch, and the
upsert of the local subscription record.
"""

from paywall.payments.checkout import CheckoutClient, CheckoutSession
from paywall.payments.reconcile import SubscriptionReconciler
from paywall.payments.webhooks import WebhookHandler, webhook_endpoint

__all__ = [
    "CheckoutClient",
    "CheckoutSession",
    "SubscriptionReconciler",
    "WebhookHandler",
    "webhook_endpoint",
]
