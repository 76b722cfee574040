"""Subscription paywall: GitHub sign-in, Stripe Checkout and webhook reconciliation."""

__version__ = "0.1.0"
