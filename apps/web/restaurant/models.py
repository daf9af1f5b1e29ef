"""
Restaurant models - Dishes, menus, restaurants, and orders.

The restaurant row carries its preparation queue: an ordered list of order
ids (head = being prepared) plus the time the head started preparing.
Orders live in their own table; the queue is only an index into it.
"""

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from apps.web.core.models import TimeStampedModel

from .managers import OrderQuerySet, RestaurantQuerySet


class Dish(models.Model):
    """
    A dish in the shared catalogue.

    Dishes with a restaurant set are custom dishes created by that owner.
    """

    name = models.CharField(max_length=100)
    category = models.CharField(max_length=20)
    image_url = models.URLField(blank=True)
    ingredients = models.JSONField(
        default=list,
        blank=True,
        help_text='List of ingredients (e.g., ["flour", "tomato"])',
    )
    restaurant = models.ForeignKey(
        "Restaurant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="custom_dishes",
        help_text="Null for catalogue dishes",
    )

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "dishes"

    def __str__(self) -> str:
        return self.name


class Restaurant(TimeStampedModel):
    """
    A restaurant run by a single owner.

    ``queue`` holds order ids in arrival order. It only ever contains this
    restaurant's orders in state received/preparing, and only the head may
    be preparing.
    """

    owner = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="restaurant",
    )
    name = models.CharField(max_length=50)
    phone_number = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    # Preparation queue
    queue = models.JSONField(
        default=list,
        blank=True,
        help_text="Order ids awaiting preparation, head first",
    )
    last_preparation_start = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the current head started preparing",
    )

    objects = RestaurantQuerySet.as_manager()

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    @property
    def head(self) -> int | None:
        """Id of the order at the front of the queue, if any."""
        return self.queue[0] if self.queue else None

    def preparation_time_for(self, dish_id: int) -> int | None:
        """Minutes to prepare one unit of a dish, or None if it's not on the menu."""
        return (
            self.menu_entries.filter(dish_id=dish_id)
            .values_list("preparation_time", flat=True)
            .first()
        )

    def preparation_times(self) -> dict[int, int]:
        """Map of dish id -> preparation minutes for the whole menu."""
        return dict(self.menu_entries.values_list("dish_id", "preparation_time"))


class MenuEntry(models.Model):
    """
    A dish on a restaurant's menu with its price and preparation time.
    """

    restaurant = models.ForeignKey(
        Restaurant,
        on_delete=models.CASCADE,
        related_name="menu_entries",
    )
    dish = models.ForeignKey(
        Dish,
        on_delete=models.CASCADE,
        related_name="menu_entries",
    )
    price = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Price in cents",
    )
    preparation_time = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Minutes to prepare one unit",
    )

    class Meta:
        ordering = ["pk"]
        verbose_name_plural = "menu entries"
        constraints = [
            models.UniqueConstraint(
                fields=["restaurant", "dish"],
                name="unique_dish_per_restaurant_menu",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.dish} @ {self.restaurant} ({self.preparation_time} min)"


class OrderState(models.TextChoices):
    """Order lifecycle state. Transitions only move forward."""

    RECEIVED = "received", "Received"
    PREPARING = "preparing", "Preparing"
    READY = "ready", "Ready"
    COMPLETED = "completed", "Completed"


# States an order can be in while it sits in a restaurant queue
QUEUED_STATES = (OrderState.RECEIVED, OrderState.PREPARING)


class Order(TimeStampedModel):
    """
    A customer's order for a single dish from a single restaurant.

    ``price`` is computed from the menu at creation time and never changes
    afterwards, even if the menu price does.
    """

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    restaurant = models.ForeignKey(
        Restaurant,
        on_delete=models.CASCADE,
        related_name="orders",
    )
    dish = models.ForeignKey(
        Dish,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    amount = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.PositiveIntegerField(help_text="Total in cents")
    state = models.CharField(
        max_length=20,
        choices=OrderState.choices,
        default=OrderState.RECEIVED,
    )

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["customer", "-created_at"], name="order_customer_created_idx"
            ),
            models.Index(
                fields=["restaurant", "-created_at"], name="order_restaurant_created_idx"
            ),
            models.Index(
                fields=["restaurant", "state"], name="order_restaurant_state_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"Order {self.pk} - {self.amount}x {self.dish_id} ({self.state})"

    @property
    def is_queued(self) -> bool:
        return self.state in QUEUED_STATES
