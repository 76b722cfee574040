"""Lightweight table-name constants and column-name enums."""

from enum import Enum


# Table name constants
class Table:
    """Database table names."""

    CUSTOMERS = "customers"
    SUBSCRIPTIONS = "subscriptions"
    SCHEMA_MIGRATIONS = "schema_migrations"


class SubscriptionStatus(str, Enum):
    """Subscription status."""

    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def from_active(cls, active: bool) -> "SubscriptionStatus":
        return cls.ACTIVE if active else cls.INACTIVE
