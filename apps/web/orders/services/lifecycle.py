"""
Order lifecycle - placement, pickup confirmation, and order history.

Placing an order creates it in ``received`` state and appends it to the
restaurant's queue in the same transaction, so a queue entry never points
at a missing order and no order is left out of its queue.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.db import transaction

from apps.web.orders.exceptions import (
    InvalidOrderState,
    OrderNotFound,
    OrderStateConflict,
    OrderValidationError,
    RestaurantNotFound,
)
from apps.web.orders.services.queue import enqueue
from apps.web.restaurant.models import MenuEntry, Order, OrderState, Restaurant

logger = logging.getLogger(__name__)

MAX_AMOUNT = 99


@dataclass(frozen=True)
class OrderLine:
    """One cart line: ``amount`` units of a dish from a restaurant."""

    restaurant_id: int
    dish_id: int
    amount: int


def _price_lines(lines: Sequence[OrderLine]) -> list[tuple[OrderLine, int]]:
    """
    Validate every line against the menus and compute its price.

    Done before any write so a bad line rejects the whole cart.

    Returns:
        List of (line, price_in_cents) tuples.
    """
    priced: list[tuple[OrderLine, int]] = []

    for i, line in enumerate(lines):
        field_prefix = f"items[{i}]"

        if not 1 <= line.amount <= MAX_AMOUNT:
            raise OrderValidationError(
                f"Amount must be between 1 and {MAX_AMOUNT}",
                field=f"{field_prefix}.amount",
            )

        if not Restaurant.objects.filter(pk=line.restaurant_id, is_active=True).exists():
            raise RestaurantNotFound(f"Restaurant {line.restaurant_id} not found")

        entry = MenuEntry.objects.filter(
            restaurant_id=line.restaurant_id,
            dish_id=line.dish_id,
        ).first()
        if entry is None:
            raise OrderValidationError(
                f"Dish {line.dish_id} is not on this restaurant's menu",
                field=f"{field_prefix}.dish_id",
            )

        priced.append((line, entry.price * line.amount))

    return priced


def _create_and_enqueue(customer: Any, line: OrderLine, price: int) -> Order:
    order = Order.objects.create(
        customer=customer,
        restaurant_id=line.restaurant_id,
        dish_id=line.dish_id,
        amount=line.amount,
        price=price,
        state=OrderState.RECEIVED,
    )
    enqueue(line.restaurant_id, order.pk)
    return order


def place_order(customer: Any, lines: Sequence[OrderLine]) -> list[Order]:
    """
    Place a cart of orders, one order per line.

    Args:
        customer: The customer placing the order.
        lines: Cart lines. Prices sent by clients are never used.

    Returns:
        The created orders, in cart order.

    Raises:
        OrderValidationError: Empty cart, bad amount, or dish not on the menu.
        RestaurantNotFound: Restaurant missing or deactivated.
    """
    if not lines:
        raise OrderValidationError("An order needs at least one item", field="items")

    priced = _price_lines(lines)

    if settings.ORDERS_ATOMIC_PLACEMENT:
        with transaction.atomic():
            orders = [_create_and_enqueue(customer, line, price) for line, price in priced]
    else:
        # A crash between the two writes leaves an order missing from its
        # queue until `manage.py rebuild_queues` runs.
        logger.warning(
            "Placing %d orders without a transaction (ORDERS_ATOMIC_PLACEMENT off)",
            len(priced),
        )
        orders = [_create_and_enqueue(customer, line, price) for line, price in priced]

    logger.info(
        "Customer %s placed orders %s",
        customer.pk,
        [order.pk for order in orders],
    )
    return orders


def confirm_pickup(customer: Any, order_id: int) -> Order:
    """
    Mark a ready order as picked up by its customer.

    Raises:
        OrderNotFound: Not one of the customer's orders.
        InvalidOrderState: The order isn't ready.
        OrderStateConflict: The order changed state concurrently.
    """
    order = Order.objects.filter(pk=order_id, customer=customer).first()
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found", order_id=order_id)

    if order.state != OrderState.READY:
        raise InvalidOrderState(
            "Order not ready for pickup",
            order_id=order.pk,
            state=order.state,
        )

    if not Order.objects.transition(order.pk, OrderState.READY, OrderState.COMPLETED):
        raise OrderStateConflict(
            f"Order {order.pk} is no longer ready",
            order_id=order.pk,
            expected_state=OrderState.READY,
        )

    order.state = OrderState.COMPLETED
    logger.info("Order %s picked up", order.pk)
    return order


def list_orders(user: Any, page: int = 1) -> tuple[int, list[Order]]:
    """
    A page of the user's order history, newest first.

    Customers see their own orders; owners see their restaurant's.

    Returns:
        Tuple of (total_count, orders_on_page)
    """
    page_size = settings.ORDERS_PAGE_SIZE
    page = max(page, 1)

    orders = (
        Order.objects.visible_to(user)
        .select_related("dish", "restaurant", "customer")
        .order_by("-created_at", "-pk")
    )
    start = (page - 1) * page_size
    return orders.count(), list(orders[start : start + page_size])
