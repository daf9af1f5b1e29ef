"""
Queue advancement - moves orders through received -> preparing -> ready.

Handles:
1. Resolving the owner's restaurant and the order to advance (head by default)
2. Conditional state updates that fail with a conflict on concurrent writes
3. Recording when the queue head starts preparing
4. Dropping orders from the queue once they are ready
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from django.db import transaction
from django.utils import timezone

from apps.web.orders.exceptions import (
    InvalidOrderState,
    OrderNotFound,
    OrderStateConflict,
    RestaurantNotFound,
)
from apps.web.orders.services.queue import dequeue
from apps.web.restaurant.models import Order, OrderState, Restaurant

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class AdvanceResult:
    """Outcome of an advance call. ``order`` is None when the queue was empty."""

    order: Order | None
    previous_state: str | None = None
    state: str | None = None


def _resolve_target(restaurant: Restaurant, order_id: int) -> Order:
    """Load an order, scoped to the restaurant."""
    order = Order.objects.filter(pk=order_id, restaurant=restaurant).first()
    if order is None:
        raise OrderNotFound(
            f"Order {order_id} not found in this restaurant",
            order_id=order_id,
        )
    return order


def _transition(order: Order, expected: str, new: str) -> None:
    if not Order.objects.transition(order.pk, expected, new):
        logger.warning(
            "Order %s changed state concurrently (expected %s)", order.pk, expected
        )
        raise OrderStateConflict(
            f"Order {order.pk} is no longer {expected}",
            order_id=order.pk,
            expected_state=expected,
        )
    order.state = new


def advance_queue(
    owner: Any,
    order_id: int | None = None,
    *,
    now: Clock = timezone.now,
) -> AdvanceResult:
    """
    Advance one order of the owner's restaurant by one state.

    With no ``order_id`` the head of the queue is advanced; an empty queue
    is a successful no-op. Only the head may start preparing, so at most one
    queued order is ever preparing.

    Args:
        owner: The restaurant owner making the call.
        order_id: Order to advance, or None for the queue head.
        now: Clock used to stamp the preparation start.

    Returns:
        AdvanceResult with the order and its previous and new state.

    Raises:
        RestaurantNotFound: The user owns no restaurant.
        OrderNotFound: The order doesn't belong to the owner's restaurant.
        InvalidOrderState: The order is ready/completed, or isn't the head.
        OrderStateConflict: A concurrent call advanced the order first.
    """
    with transaction.atomic():
        restaurant = Restaurant.objects.select_for_update().filter(owner=owner).first()
        if restaurant is None:
            raise RestaurantNotFound("Restaurant not found")

        if order_id is None:
            if restaurant.head is None:
                logger.info(
                    "Queue at restaurant %s is empty - nothing to advance",
                    restaurant.pk,
                )
                return AdvanceResult(order=None)
            order = _resolve_target(restaurant, restaurant.head)
        else:
            order = _resolve_target(restaurant, order_id)

        # Decided before any write touches the queue
        is_head = restaurant.head == order.pk
        previous = order.state

        if previous == OrderState.RECEIVED:
            if not is_head:
                raise InvalidOrderState(
                    f"Order {order.pk} is not at the head of the queue",
                    order_id=order.pk,
                    state=previous,
                )
            _transition(order, OrderState.RECEIVED, OrderState.PREPARING)
            Restaurant.objects.set_last_preparation_start(restaurant.pk, now())

        elif previous == OrderState.PREPARING:
            _transition(order, OrderState.PREPARING, OrderState.READY)
            dequeue(restaurant.pk, order.pk)

        else:
            raise InvalidOrderState(
                f"Order {order.pk} is already {previous}",
                order_id=order.pk,
                state=previous,
            )

    logger.info(
        "Order %s at restaurant %s: %s -> %s",
        order.pk,
        restaurant.pk,
        previous,
        order.state,
    )
    return AdvanceResult(order=order, previous_state=previous, state=order.state)
