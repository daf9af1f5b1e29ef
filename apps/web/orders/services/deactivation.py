"""
Account deactivation - removes unresolved orders and their queue entries.

Completed orders are kept for the restaurant's history.
"""

import logging
from typing import Any

from django.db import transaction

from apps.web.orders.services.queue import dequeue
from apps.web.restaurant.models import Order, Restaurant

logger = logging.getLogger(__name__)


@transaction.atomic
def deactivate_customer(user: Any) -> int:
    """
    Deactivate a customer account.

    Deletes the customer's non-completed orders after pruning them from
    their restaurants' queues.

    Returns:
        Number of orders deleted.
    """
    pending = list(Order.objects.filter(customer=user).not_completed())
    for order in pending:
        dequeue(order.restaurant_id, order.pk)

    deleted, _ = Order.objects.filter(pk__in=[o.pk for o in pending]).delete()

    user.is_active = False
    user.save(update_fields=["is_active"])

    logger.info("Deactivated customer %s, removed %d open orders", user.pk, deleted)
    return deleted


@transaction.atomic
def deactivate_owner(user: Any) -> int:
    """
    Deactivate an owner account and close their restaurant.

    The restaurant's non-completed orders are deleted and its queue emptied.

    Returns:
        Number of orders deleted.
    """
    deleted = 0
    restaurant = Restaurant.objects.select_for_update().filter(owner=user).first()
    if restaurant is not None:
        deleted, _ = Order.objects.filter(restaurant=restaurant).not_completed().delete()
        restaurant.queue = []
        restaurant.last_preparation_start = None
        restaurant.is_active = False
        restaurant.save(
            update_fields=["queue", "last_preparation_start", "is_active", "updated_at"]
        )

    user.is_active = False
    user.save(update_fields=["is_active"])

    logger.info("Deactivated owner %s, removed %d open orders", user.pk, deleted)
    return deleted
