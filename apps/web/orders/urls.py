"""
URL routing for order and queue API endpoints.

All endpoints require an authenticated session; roles are checked per view.
"""

from django.urls import path

from apps.web.orders import views

app_name = "orders"

urlpatterns = [
    # Customer orders
    path("orders", views.orders, name="orders"),
    path("orders/<int:order_id>/pickup", views.pickup, name="order_pickup"),
    path("orders/<int:order_id>/wait", views.wait_estimate, name="order_wait"),
    # Owner queue
    path("queue", views.queue, name="queue"),
    path("queue/advance", views.advance, name="queue_advance"),
    path("restaurant/analytics", views.analytics, name="restaurant_analytics"),
    # Account
    path("account/deactivate", views.deactivate_account, name="deactivate_account"),
]
