"""
Order analytics for restaurant owners.

Totals cover every order created in the window, whatever its state.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from django.db.models import Count, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from apps.web.orders.exceptions import OrderValidationError, RestaurantNotFound
from apps.web.restaurant.models import Order, Restaurant

Clock = Callable[[], datetime]

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class DishSales:
    """Sales of one dish within the window."""

    dish_id: int
    dish_name: str
    total_amount: int
    total_earned: int


@dataclass(frozen=True)
class OrderAnalytics:
    """Order totals for a restaurant over ``[start, end]``."""

    start: datetime
    end: datetime
    total_orders: int
    total_earned: int
    most_ordered: DishSales | None

    @property
    def avg_earned(self) -> float:
        if not self.total_orders:
            return 0.0
        return self.total_earned / self.total_orders


def order_analytics(
    owner: Any,
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    now: Clock = timezone.now,
) -> OrderAnalytics:
    """
    Summarise the owner's restaurant orders created between start and end.

    Args:
        owner: The restaurant owner.
        start: Window start, inclusive. Defaults to the epoch.
        end: Window end, inclusive. Defaults to now.
        now: Clock for the default end.

    Raises:
        RestaurantNotFound: The user owns no restaurant.
        OrderValidationError: start is after end.
    """
    restaurant = Restaurant.objects.for_owner(owner)
    if restaurant is None:
        raise RestaurantNotFound("Restaurant not found")

    start = start or EPOCH
    end = end or now()
    if start > end:
        raise OrderValidationError("Start date cannot be after end date", field="start")

    orders = Order.objects.filter(
        restaurant=restaurant,
        created_at__gte=start,
        created_at__lte=end,
    )
    totals = orders.aggregate(
        total_orders=Count("pk"),
        total_earned=Coalesce(Sum("price"), 0),
    )

    top = (
        orders.values("dish_id", "dish__name")
        .annotate(total_amount=Sum("amount"), total_earned=Sum("price"))
        .order_by("-total_amount", "dish_id")
        .first()
    )
    most_ordered = None
    if top is not None:
        most_ordered = DishSales(
            dish_id=top["dish_id"],
            dish_name=top["dish__name"],
            total_amount=top["total_amount"],
            total_earned=top["total_earned"],
        )

    return OrderAnalytics(
        start=start,
        end=end,
        total_orders=totals["total_orders"],
        total_earned=totals["total_earned"],
        most_ordered=most_ordered,
    )
