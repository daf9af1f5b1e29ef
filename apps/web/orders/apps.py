"""Django app configuration for the order queue module."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Order queue app configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.orders"
    verbose_name = "Order queue"
