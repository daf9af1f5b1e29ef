"""
Querysets backing the order and restaurant stores.

State changes go through conditional updates so concurrent writers can't
both win. Queue edits lock the restaurant row for the duration of the edit.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from django.db import models, transaction
from django.utils import timezone

if TYPE_CHECKING:
    from .models import Restaurant


class RestaurantQuerySet(models.QuerySet):  # type: ignore[type-arg]
    """
    Restaurant store.

    Usage:
        restaurant = Restaurant.objects.for_owner(request.user)
        Restaurant.objects.append_to_queue(restaurant.pk, order.pk)
    """

    def for_owner(self, user: Any) -> "Restaurant | None":
        """Return the restaurant owned by ``user``, or None."""
        return self.filter(owner=user).first()

    def append_to_queue(self, restaurant_id: int, order_id: int) -> bool:
        """
        Append an order id to the end of the restaurant's queue.

        Returns:
            False if the restaurant was deactivated; the queue is untouched.
        """
        with transaction.atomic():
            restaurant = self.select_for_update().get(pk=restaurant_id)
            if not restaurant.is_active:
                return False
            restaurant.queue.append(order_id)
            restaurant.save(update_fields=["queue", "updated_at"])
            return True

    def remove_from_queue(self, restaurant_id: int, order_id: int) -> bool:
        """
        Remove an order id from the queue, wherever it sits.

        Returns:
            True if the id was present.
        """
        with transaction.atomic():
            restaurant = self.select_for_update().get(pk=restaurant_id)
            if order_id not in restaurant.queue:
                return False
            restaurant.queue.remove(order_id)
            restaurant.save(update_fields=["queue", "updated_at"])
            return True

    def set_last_preparation_start(
        self, restaurant_id: int, timestamp: datetime | None
    ) -> None:
        self.filter(pk=restaurant_id).update(
            last_preparation_start=timestamp,
            updated_at=timezone.now(),
        )


class OrderQuerySet(models.QuerySet):  # type: ignore[type-arg]
    """
    Order store.

    SECURITY: Always scope lookups by customer or restaurant in views,
    never by bare primary key.
    """

    def transition(self, order_id: int, expected: str, new: str) -> bool:
        """
        Move an order from ``expected`` to ``new`` state.

        Compiles to ``UPDATE ... WHERE id = %s AND state = %s`` so the check
        and the write are a single statement.

        Returns:
            False if the stored state was no longer ``expected``.
        """
        updated = self.filter(pk=order_id, state=expected).update(
            state=new,
            updated_at=timezone.now(),
        )
        return updated == 1

    def in_queue_order(
        self, restaurant: "Restaurant", states: Iterable[str]
    ) -> models.QuerySet[Any]:
        """Orders of a restaurant in the given states, oldest first."""
        return self.filter(restaurant=restaurant, state__in=list(states)).order_by(
            "created_at", "pk"
        )

    def not_completed(self) -> models.QuerySet[Any]:
        from .models import OrderState  # noqa: PLC0415

        return self.exclude(state=OrderState.COMPLETED)

    def visible_to(self, user: Any) -> models.QuerySet[Any]:
        """Orders a user may see: their own, or their restaurant's."""
        if getattr(user, "is_owner", False):
            return self.filter(restaurant__owner=user)
        return self.filter(customer=user)
