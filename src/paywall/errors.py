"""Exception hierarchy shared by the adapters.

Adapters raise these; only the route layer maps them onto HTTP responses.
"""


class PaywallError(Exception):
    """Base class for all paywall errors."""


class ConfigurationError(PaywallError):
    """Required setting is missing or invalid."""


class SignInError(PaywallError):
    """The identity provider rejected or failed the sign-in exchange."""


class CheckoutError(PaywallError):
    """The payment provider failed to create a customer or session."""


class UnknownPriceError(PaywallError):
    """A price identifier outside the configured sellable set was requested."""

    def __init__(self, price_id: str):
        super().__init__(f"Unknown price: {price_id!r}")
        self.price_id = price_id


class ReconcileError(PaywallError):
    """The local subscription record could not be written."""


class UnhandledEventError(PaywallError):
    """An allow-listed event type has no handler."""

    def __init__(self, event_type: str):
        super().__init__(f"Unhandled event: {event_type}")
        self.event_type = event_type


class EventPayloadError(PaywallError):
    """A relevant event is missing a required identifier."""
