"""Stripe event kinds the paywall acts on, and how each maps to a reconcile call."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional

from paywall.errors import EventPayloadError


class LifecycleEvent(str, Enum):
    """Stripe event types that change subscription state."""

    CHECKOUT_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"


# Every other event type is acknowledged and ignored
RELEVANT_EVENTS = frozenset(e.value for e in LifecycleEvent)


@dataclass(frozen=True)
class ReconcileArgs:
    subscription_id: str
    customer_id: str
    active: bool


def _object_id(value: Any) -> Optional[str]:
    """Read an ID that Stripe may send as a string or as an expanded object."""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping):
        return value.get("id") or None
    return getattr(value, "id", None)


def _require(obj: Mapping, field: str, event_type: str) -> str:
    found = _object_id(obj.get(field))
    if not found:
        raise EventPayloadError(f"{event_type} is missing {field}")
    return found


def _from_checkout_session(obj: Mapping, event_type: str) -> Optional[tuple[str, str]]:
    # One-off payment sessions carry no subscription
    if obj.get("mode", "subscription") != "subscription":
        return None
    return (
        _require(obj, "subscription", event_type),
        _require(obj, "customer", event_type),
    )


def _from_subscription(obj: Mapping, event_type: str) -> Optional[tuple[str, str]]:
    return (
        _require(obj, "id", event_type),
        _require(obj, "customer", event_type),
    )


Extractor = Callable[[Mapping, str], Optional[tuple[str, str]]]


@dataclass(frozen=True)
class EventRoute:
    event: LifecycleEvent
    extract: Extractor
    active: bool


def build_dispatch_table(routes: Iterable[EventRoute]) -> dict[str, EventRoute]:
    """Index routes by event type, refusing two routes for the same type."""
    table: dict[str, EventRoute] = {}
    for route in routes:
        key = route.event.value
        if key in table:
            raise ValueError(f"Duplicate route for event type {key}")
        table[key] = route
    return table


DISPATCH = build_dispatch_table(
    [
        EventRoute(LifecycleEvent.CHECKOUT_COMPLETED, _from_checkout_session, active=True),
        EventRoute(LifecycleEvent.SUBSCRIPTION_CREATED, _from_subscription, active=True),
        EventRoute(LifecycleEvent.SUBSCRIPTION_UPDATED, _from_subscription, active=True),
        EventRoute(LifecycleEvent.SUBSCRIPTION_DELETED, _from_subscription, active=False),
    ]
)


def reconcile_args(route: EventRoute, obj: Mapping) -> Optional[ReconcileArgs]:
    """
    Turn an event's data object into reconcile arguments.

    Returns None when the event carries nothing to reconcile.

    Raises:
        EventPayloadError: If a required ID is missing
    """
    ids = route.extract(obj, route.event.value)
    if ids is None:
        return None
    subscription_id, customer_id = ids
    return ReconcileArgs(subscription_id, customer_id, route.active)
