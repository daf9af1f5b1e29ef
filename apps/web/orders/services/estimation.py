"""
Wait-time estimation for queued orders.

The estimate for an order is the preparation time of everything up to and
including it in the queue. If the head is already preparing, the minutes
it has been at it come off its own share (never below zero).
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.utils import timezone

from apps.web.orders.exceptions import OrderNotFound
from apps.web.orders.services.queue import queue_position
from apps.web.restaurant.models import Order, OrderState, Restaurant

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class WaitEstimate:
    """Projected wait for one order."""

    order_id: int
    minutes: float
    ready_at: datetime
    position: int | None

    @property
    def is_queued(self) -> bool:
        return self.position is not None


def _elapsed_minutes(since: datetime, now: datetime) -> float:
    # A start time in the future counts as no progress
    return max((now - since).total_seconds() / 60, 0.0)


def _sum_preparation(restaurant: Restaurant, position: int, now: datetime) -> float:
    """Minutes of work in queue[0 : position + 1]."""
    ahead = restaurant.queue[: position + 1]
    orders = Order.objects.in_bulk(ahead)
    prep_times = restaurant.preparation_times()

    total = 0.0
    for index, queued_id in enumerate(ahead):
        queued = orders.get(queued_id)
        if queued is None:
            logger.warning(
                "Restaurant %s queue references missing order %s - counting 0 min",
                restaurant.pk,
                queued_id,
            )
            continue

        prep_time = prep_times.get(queued.dish_id)
        if prep_time is None:
            logger.warning(
                "Order %s dish %s is not on restaurant %s menu - counting 0 min",
                queued.pk,
                queued.dish_id,
                restaurant.pk,
            )
            continue

        share = float(prep_time * queued.amount)
        if (
            index == 0
            and queued.state == OrderState.PREPARING
            and restaurant.last_preparation_start is not None
        ):
            elapsed = _elapsed_minutes(restaurant.last_preparation_start, now)
            share = max(share - elapsed, 0.0)
        total += share

    return total


def build_wait_estimate(order_id: int, *, now: Clock = timezone.now) -> WaitEstimate:
    """
    Estimate how long until an order is ready.

    Orders that aren't queued (ready, completed, or never enqueued) get 0.

    Raises:
        OrderNotFound: If the order doesn't exist.
    """
    order = Order.objects.select_related("restaurant").filter(pk=order_id).first()
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found", order_id=order_id)

    current = now()
    restaurant = order.restaurant
    position = queue_position(restaurant, order.pk)

    minutes = 0.0
    if position is not None:
        minutes = _sum_preparation(restaurant, position, current)

    return WaitEstimate(
        order_id=order.pk,
        minutes=minutes,
        ready_at=current + timedelta(minutes=minutes),
        position=position,
    )


def estimate_wait(order_id: int, *, now: Clock = timezone.now) -> float:
    """Minutes until ``order_id`` is expected to be ready."""
    return build_wait_estimate(order_id, now=now).minutes


def estimate_ready_at(order_id: int, *, now: Clock = timezone.now) -> datetime:
    """When ``order_id`` is expected to be ready. Unqueued orders are ready now."""
    return build_wait_estimate(order_id, now=now).ready_at
