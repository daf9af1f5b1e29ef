"""Admin registration for restaurant models."""

from typing import Any

from django.contrib import admin

from apps.web.orders.services import rebuild_queue
from apps.web.restaurant.models import Dish, MenuEntry, Order, Restaurant


class MenuEntryInline(admin.TabularInline):
    """Inline for menu entries within a restaurant."""

    model = MenuEntry
    extra = 0
    fields = ["dish", "price", "preparation_time"]
    autocomplete_fields = ["dish"]


@admin.register(Restaurant)
class RestaurantAdmin(admin.ModelAdmin):
    """Admin for restaurants. The queue is read-only; use the rebuild action."""

    list_display = ["name", "owner", "is_active", "queue_length", "last_preparation_start"]
    list_filter = ["is_active"]
    search_fields = ["name", "owner__username", "owner__email"]
    readonly_fields = ["queue", "last_preparation_start", "created_at", "updated_at"]
    inlines = [MenuEntryInline]
    actions = ["rebuild_queues"]

    fieldsets = [
        (None, {"fields": ["owner", "name", "phone_number", "address", "is_active"]}),
        ("Queue", {"fields": ["queue", "last_preparation_start"]}),
        (
            "Timestamps",
            {"fields": ["created_at", "updated_at"], "classes": ["collapse"]},
        ),
    ]

    @admin.display(description="Queued")
    def queue_length(self, obj: Restaurant) -> int:
        return len(obj.queue)

    @admin.action(description="Rebuild queue from open orders")
    def rebuild_queues(self, request: Any, queryset: Any) -> None:
        for restaurant in queryset:
            rebuild_queue(restaurant)
        self.message_user(request, f"Rebuilt {queryset.count()} queue(s)")


@admin.register(Dish)
class DishAdmin(admin.ModelAdmin):
    """Admin for the dish catalogue."""

    list_display = ["name", "category", "restaurant"]
    list_filter = ["category"]
    search_fields = ["name", "category"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin for orders.

    State and price are read-only: state only moves through the queue API.
    """

    list_display = ["pk", "restaurant", "customer", "dish", "amount", "price", "state", "created_at"]
    list_filter = ["state", "restaurant"]
    search_fields = ["customer__username", "restaurant__name", "dish__name"]
    readonly_fields = ["state", "price", "created_at", "updated_at"]
    date_hierarchy = "created_at"
