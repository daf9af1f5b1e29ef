"""
Pydantic schemas for the order queue API.

These schemas define the public API contract for orders and queues.
Prices are integers in cents; durations are minutes.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Requests
# =============================================================================


class OrderItemCreateSchema(BaseModel):
    """A single cart line in an order request. Any client-sent price is ignored."""

    model_config = ConfigDict(extra="ignore")

    restaurant_id: int
    dish_id: int
    amount: int = Field(..., ge=1, le=99)


class OrderCreateRequest(BaseModel):
    """Request body for POST /api/orders."""

    items: list[OrderItemCreateSchema] = Field(..., min_length=1)


class AdvanceQueueRequest(BaseModel):
    """Request body for POST /api/queue/advance. No order_id = queue head."""

    order_id: int | None = None


class DeactivateRequest(BaseModel):
    """Request body for POST /api/account/deactivate."""

    password: str = Field(..., min_length=1)


class AnalyticsQuery(BaseModel):
    """Query string for GET /api/restaurant/analytics. ISO 8601 or unix timestamps."""

    model_config = ConfigDict(extra="ignore")

    start: datetime | None = None
    end: datetime | None = None


# =============================================================================
# Responses
# =============================================================================


class OrderSchema(BaseModel):
    """An order as returned to its customer or restaurant."""

    model_config = ConfigDict(from_attributes=True)

    order_id: int
    restaurant_id: int
    restaurant_name: str
    dish_id: int
    dish_name: str
    amount: int
    price: int
    state: str
    created_at: datetime


class OrderCreateResponse(BaseModel):
    """Response for POST /api/orders."""

    orders: list[OrderSchema]


class OrderListResponse(BaseModel):
    """Response for GET /api/orders."""

    total: int
    page: int
    orders: list[OrderSchema]


class QueueEntrySchema(BaseModel):
    """One order in the owner's queue view."""

    model_config = ConfigDict(from_attributes=True)

    order_id: int
    customer_name: str
    dish_name: str
    dish_image_url: str
    amount: int
    price: int
    state: str
    preparation_time: int | None


class QueueResponse(BaseModel):
    """Response for GET /api/queue."""

    queue: list[QueueEntrySchema]


class AdvanceQueueResponse(BaseModel):
    """Response for POST /api/queue/advance."""

    message: str
    order_id: int | None = None
    previous_state: str | None = None
    state: str | None = None


class PickupResponse(BaseModel):
    """Response for POST /api/orders/{order_id}/pickup."""

    message: str
    order_id: int
    state: str


class WaitEstimateResponse(BaseModel):
    """Response for GET /api/orders/{order_id}/wait."""

    order_id: int
    minutes: float
    display_minutes: int
    ready_at: datetime
    queued: bool
    position: int | None


class DishSalesSchema(BaseModel):
    """Sales of one dish in the analytics window."""

    model_config = ConfigDict(from_attributes=True)

    dish_id: int
    dish_name: str
    total_amount: int
    total_earned: int


class AnalyticsResponse(BaseModel):
    """Response for GET /api/restaurant/analytics. Money in cents."""

    start: datetime
    end: datetime
    total_orders: int
    total_earned: int
    avg_earned: float
    most_ordered: DishSalesSchema | None


class ValidationErrorDetail(BaseModel):
    """A single validation error."""

    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    """Response for validation errors."""

    error: Literal["validation_error"]
    details: list[ValidationErrorDetail]
