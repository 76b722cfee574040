from paywall.db.pool import close_pool, create_pool
from paywall.db.repository import SubscriptionRepository

__all__ = ["SubscriptionRepository", "close_pool", "create_pool"]
