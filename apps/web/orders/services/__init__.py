"""Order queue services - placement, queue tracking, advancement, and wait estimates."""

from apps.web.orders.services.advancement import AdvanceResult, advance_queue
from apps.web.orders.services.analytics import DishSales, OrderAnalytics, order_analytics
from apps.web.orders.services.deactivation import deactivate_customer, deactivate_owner
from apps.web.orders.services.estimation import (
    WaitEstimate,
    build_wait_estimate,
    estimate_ready_at,
    estimate_wait,
)
from apps.web.orders.services.lifecycle import (
    OrderLine,
    confirm_pickup,
    list_orders,
    place_order,
)
from apps.web.orders.services.queue import (
    QueueEntry,
    dequeue,
    enqueue,
    get_queue_for_owner,
    queue_position,
    queued_orders,
    rebuild_queue,
)

__all__ = [
    "AdvanceResult",
    "DishSales",
    "OrderAnalytics",
    "OrderLine",
    "QueueEntry",
    "WaitEstimate",
    "advance_queue",
    "build_wait_estimate",
    "confirm_pickup",
    "deactivate_customer",
    "deactivate_owner",
    "dequeue",
    "enqueue",
    "estimate_ready_at",
    "estimate_wait",
    "get_queue_for_owner",
    "list_orders",
    "order_analytics",
    "place_order",
    "queue_position",
    "queued_orders",
    "rebuild_queue",
]
