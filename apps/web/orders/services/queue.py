"""
Queue tracker - per-restaurant FIFO of unresolved order ids.

Order ids are appended once, when the order is placed, and removed once,
when the order becomes ready. Nothing reorders the queue.
"""

import logging
from dataclasses import dataclass
from typing import Any

from django.db import transaction

from apps.web.orders.exceptions import RestaurantNotFound
from apps.web.restaurant.models import QUEUED_STATES, Order, OrderState, Restaurant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueEntry:
    """One order as shown on the owner's queue screen."""

    order_id: int
    customer_name: str
    dish_name: str
    dish_image_url: str
    amount: int
    price: int
    state: str
    preparation_time: int | None


def enqueue(restaurant_id: int, order_id: int) -> None:
    """
    Append an order to the end of its restaurant's queue.

    Raises:
        RestaurantNotFound: If the restaurant was deactivated in the meantime.
    """
    if not Restaurant.objects.append_to_queue(restaurant_id, order_id):
        raise RestaurantNotFound(f"Restaurant {restaurant_id} not found", order_id=order_id)
    logger.debug("Order %s queued at restaurant %s", order_id, restaurant_id)


def dequeue(restaurant_id: int, order_id: int) -> bool:
    """
    Remove an order from its restaurant's queue.

    Returns:
        False if the order wasn't queued.
    """
    removed = Restaurant.objects.remove_from_queue(restaurant_id, order_id)
    if removed:
        logger.debug("Order %s left the queue at restaurant %s", order_id, restaurant_id)
    return removed


def queue_position(restaurant: Restaurant, order_id: int) -> int | None:
    """Zero-based position of an order in the queue, or None if not queued."""
    try:
        return restaurant.queue.index(order_id)
    except ValueError:
        return None


def queued_orders(restaurant: Restaurant) -> list[Order]:
    """Orders in queue order. Ids that no longer resolve are skipped."""
    by_id = Order.objects.select_related("customer", "dish").in_bulk(restaurant.queue)

    orders: list[Order] = []
    for order_id in restaurant.queue:
        order = by_id.get(order_id)
        if order is None:
            logger.warning(
                "Restaurant %s queue references missing order %s",
                restaurant.pk,
                order_id,
            )
            continue
        orders.append(order)
    return orders


def get_queue_for_owner(owner: Any) -> list[QueueEntry]:
    """
    The owner's preparation queue, head first.

    Raises:
        RestaurantNotFound: If the user owns no restaurant.
    """
    restaurant = Restaurant.objects.for_owner(owner)
    if restaurant is None:
        raise RestaurantNotFound("Restaurant not found")

    prep_times = restaurant.preparation_times()
    entries = []
    for order in queued_orders(restaurant):
        customer = order.customer
        entries.append(
            QueueEntry(
                order_id=order.pk,
                customer_name=customer.get_full_name() if customer else "",
                dish_name=order.dish.name,
                dish_image_url=order.dish.image_url,
                amount=order.amount,
                price=order.price,
                state=order.state,
                preparation_time=prep_times.get(order.dish_id),
            )
        )
    return entries


def rebuild_queue(restaurant: Restaurant, dry_run: bool = False) -> list[int]:
    """
    Reconcile a restaurant's stored queue with its orders.

    Ids of received/preparing orders already in the queue keep their
    relative order. Ids that no longer resolve to an open order are dropped,
    open orders missing from the queue are appended oldest first, and a
    preparing order is moved to the head. Used to repair a queue after a
    crash in non-transactional placement mode or after manual data edits.

    Returns:
        The rebuilt queue.
    """
    with transaction.atomic():
        locked = Restaurant.objects.select_for_update().get(pk=restaurant.pk)
        open_orders = list(Order.objects.in_queue_order(locked, QUEUED_STATES))
        states = {order.pk: order.state for order in open_orders}

        rebuilt: list[int] = []
        for order_id in [*locked.queue, *(order.pk for order in open_orders)]:
            if order_id in states and order_id not in rebuilt:
                rebuilt.append(order_id)

        preparing = [pk for pk in rebuilt if states[pk] == OrderState.PREPARING]
        if preparing:
            rebuilt.remove(preparing[0])
            rebuilt.insert(0, preparing[0])
        if len(preparing) > 1:
            logger.warning(
                "Restaurant %s has several preparing orders %s - only %s is at the head",
                locked.pk,
                preparing,
                preparing[0],
            )

        if rebuilt != locked.queue:
            logger.info(
                "Restaurant %s queue %s -> %s%s",
                locked.pk,
                locked.queue,
                rebuilt,
                " (dry run)" if dry_run else "",
            )
            if not dry_run:
                locked.queue = rebuilt
                locked.save(update_fields=["queue", "updated_at"])

    if not dry_run:
        restaurant.queue = rebuilt
    return rebuilt
