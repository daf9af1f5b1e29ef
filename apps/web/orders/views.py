"""
Order and queue API views.

Thin JSON handlers: authenticate, check the caller's role, validate the
body, then delegate to apps.web.orders.services. Service exceptions map to
status codes here:
- NotFoundError -> 404
- OrderStateConflict -> 409 (safe to retry)
- InvalidOrderState / OrderValidationError -> 400
"""

import json
import math
from datetime import datetime
from typing import Any, TypeVar

from django.contrib.auth import logout
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from apps.web.core.decorators import idempotency_key_required, role_required
from apps.web.core.models import User
from apps.web.orders.exceptions import (
    NotFoundError,
    OrderQueueError,
    OrderStateConflict,
    OrderValidationError,
)
from apps.web.orders.serializers import (
    AdvanceQueueRequest,
    AdvanceQueueResponse,
    AnalyticsQuery,
    AnalyticsResponse,
    DeactivateRequest,
    DishSalesSchema,
    OrderCreateRequest,
    OrderCreateResponse,
    OrderListResponse,
    OrderSchema,
    PickupResponse,
    QueueEntrySchema,
    QueueResponse,
    ValidationErrorDetail,
    ValidationErrorResponse,
    WaitEstimateResponse,
)
from apps.web.orders.services import (
    OrderLine,
    advance_queue,
    build_wait_estimate,
    confirm_pickup,
    deactivate_customer,
    deactivate_owner,
    get_queue_for_owner,
    list_orders,
    order_analytics,
    place_order,
)
from apps.web.restaurant.models import Order

_S = TypeVar("_S", bound=BaseModel)


def _error_response(exc: OrderQueueError) -> JsonResponse:
    """Map a service exception to a JSON error response."""
    if isinstance(exc, NotFoundError):
        status = 404
    elif isinstance(exc, OrderStateConflict):
        status = 409
    else:
        status = 400

    if isinstance(exc, OrderValidationError) and exc.field:
        response = ValidationErrorResponse(
            error="validation_error",
            details=[ValidationErrorDetail(field=exc.field, message=exc.message)],
        )
        return JsonResponse(response.model_dump(), status=status)

    data: dict[str, Any] = {"error": exc.message}
    if exc.order_id is not None:
        data["order_id"] = exc.order_id
    return JsonResponse(data, status=status)


def _validation_error(exc: PydanticValidationError) -> JsonResponse:
    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in err["loc"]),
            message=err["msg"],
        )
        for err in exc.errors()
    ]
    response = ValidationErrorResponse(error="validation_error", details=errors)
    return JsonResponse(response.model_dump(), status=400)


def _parse_body(
    request: HttpRequest, schema: type[_S]
) -> tuple[_S | None, JsonResponse | None]:
    """
    Parse and validate a JSON request body.

    Only ``application/json`` bodies are read; an empty body or any other
    content type (e.g. a bare form post) validates as ``{}``.

    Returns:
        Tuple of (parsed_model, error_response) - exactly one is None.
    """
    try:
        body: Any = {}
        if request.content_type == "application/json" and request.body:
            body = json.loads(request.body)
        return schema.model_validate(body), None
    except json.JSONDecodeError:
        return None, JsonResponse({"error": "Invalid JSON in request body"}, status=400)
    except PydanticValidationError as e:
        return None, _validation_error(e)


def _aware(value: datetime | None) -> datetime | None:
    # Naive query datetimes are read in the server time zone
    if value is not None and timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


def _serialize_order(order: Order) -> OrderSchema:
    return OrderSchema(
        order_id=order.pk,
        restaurant_id=order.restaurant_id,
        restaurant_name=order.restaurant.name,
        dish_id=order.dish_id,
        dish_name=order.dish.name,
        amount=order.amount,
        price=order.price,
        state=order.state,
        created_at=order.created_at,
    )


@csrf_exempt
@require_http_methods(["GET", "POST"])
def orders(request: HttpRequest) -> JsonResponse:
    """
    GET  /api/orders - order history (any role)
    POST /api/orders - place an order (customers)
    """
    if request.method == "POST":
        return create_order(request)
    return order_list(request)


@role_required(User.Role.CUSTOMER)
@idempotency_key_required
def create_order(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders

    Place one order per cart line and queue each at its restaurant.

    Request body: OrderCreateRequest schema
    Response: OrderCreateResponse schema (201) or ValidationErrorResponse (400)
    """
    order_request, error = _parse_body(request, OrderCreateRequest)
    if error is not None:
        return error

    lines = [
        OrderLine(
            restaurant_id=item.restaurant_id,
            dish_id=item.dish_id,
            amount=item.amount,
        )
        for item in order_request.items
    ]

    try:
        placed = place_order(request.user, lines)
    except OrderQueueError as e:
        return _error_response(e)

    created = (
        Order.objects.select_related("restaurant", "dish")
        .filter(pk__in=[order.pk for order in placed])
        .order_by("pk")
    )
    response = OrderCreateResponse(orders=[_serialize_order(o) for o in created])
    return JsonResponse(response.model_dump(mode="json"), status=201)


@role_required()
def order_list(request: HttpRequest) -> JsonResponse:
    """
    GET /api/orders?page=N

    Response: OrderListResponse schema (200)
    """
    try:
        page = int(request.GET.get("page", 1))
    except ValueError:
        return JsonResponse({"error": "page must be an integer"}, status=400)

    total, page_orders = list_orders(request.user, page)
    response = OrderListResponse(
        total=total,
        page=max(page, 1),
        orders=[_serialize_order(o) for o in page_orders],
    )
    return JsonResponse(response.model_dump(mode="json"))


@require_GET
@role_required(User.Role.OWNER)
def queue(request: HttpRequest) -> JsonResponse:
    """
    GET /api/queue

    The owner's preparation queue, head first.

    Response: QueueResponse schema (200) or 404 if the user has no restaurant
    """
    try:
        entries = get_queue_for_owner(request.user)
    except OrderQueueError as e:
        return _error_response(e)

    response = QueueResponse(
        queue=[QueueEntrySchema.model_validate(entry) for entry in entries]
    )
    return JsonResponse(response.model_dump(mode="json"))


@csrf_exempt
@require_POST
@role_required(User.Role.OWNER)
def advance(request: HttpRequest) -> JsonResponse:
    """
    POST /api/queue/advance

    Advance the queue head (or a given order) by one state.

    Request body: AdvanceQueueRequest schema (may be empty)
    Response: AdvanceQueueResponse schema (200), 404, 409 on concurrent update
    """
    advance_request, error = _parse_body(request, AdvanceQueueRequest)
    if error is not None:
        return error

    try:
        result = advance_queue(request.user, advance_request.order_id)
    except OrderQueueError as e:
        return _error_response(e)

    if result.order is None:
        response = AdvanceQueueResponse(message="Queue is empty.")
    else:
        response = AdvanceQueueResponse(
            message="Queue advanced successfully.",
            order_id=result.order.pk,
            previous_state=result.previous_state,
            state=result.state,
        )
    return JsonResponse(response.model_dump(mode="json"))


@csrf_exempt
@require_POST
@role_required(User.Role.CUSTOMER)
def pickup(request: HttpRequest, order_id: int) -> JsonResponse:
    """
    POST /api/orders/{order_id}/pickup

    Customer confirms a ready order was collected.

    Response: PickupResponse schema (200), 400 if not ready, 404
    """
    try:
        order = confirm_pickup(request.user, order_id)
    except OrderQueueError as e:
        return _error_response(e)

    response = PickupResponse(
        message="Order completed.",
        order_id=order.pk,
        state=order.state,
    )
    return JsonResponse(response.model_dump(mode="json"))


@require_GET
@role_required()
def wait_estimate(request: HttpRequest, order_id: int) -> JsonResponse:
    """
    GET /api/orders/{order_id}/wait

    Live wait estimate for the caller's order (or their restaurant's).

    Response: WaitEstimateResponse schema (200) or 404
    """
    if not Order.objects.visible_to(request.user).filter(pk=order_id).exists():
        return JsonResponse({"error": f"Order {order_id} not found"}, status=404)

    try:
        estimate = build_wait_estimate(order_id)
    except OrderQueueError as e:
        return _error_response(e)

    response = WaitEstimateResponse(
        order_id=estimate.order_id,
        minutes=estimate.minutes,
        display_minutes=math.ceil(estimate.minutes),
        ready_at=estimate.ready_at,
        queued=estimate.is_queued,
        position=estimate.position,
    )
    return JsonResponse(response.model_dump(mode="json"))


@csrf_exempt
@require_POST
@role_required()
def deactivate_account(request: HttpRequest) -> JsonResponse:
    """
    POST /api/account/deactivate

    Deactivate the caller's account after a password check. Open orders are
    deleted and pruned from queues.
    """
    deactivate_request, error = _parse_body(request, DeactivateRequest)
    if error is not None:
        return error

    user = request.user
    if not user.check_password(deactivate_request.password):
        return JsonResponse({"error": "Wrong password."}, status=400)

    if user.is_owner:
        removed = deactivate_owner(user)
    else:
        removed = deactivate_customer(user)

    logout(request)
    return JsonResponse(
        {
            "success": True,
            "message": "Account deactivated.",
            "orders_removed": removed,
        }
    )


@require_GET
@role_required(User.Role.OWNER)
def analytics(request: HttpRequest) -> JsonResponse:
    """
    GET /api/restaurant/analytics?start=...&end=...

    Order totals and the most ordered dish for the owner's restaurant.
    ``start`` defaults to the epoch and ``end`` to now.

    Response: AnalyticsResponse schema (200), 400 if start is after end, 404
    """
    try:
        query = AnalyticsQuery.model_validate(request.GET.dict())
    except PydanticValidationError as e:
        return _validation_error(e)

    try:
        result = order_analytics(request.user, _aware(query.start), _aware(query.end))
    except OrderQueueError as e:
        return _error_response(e)

    most_ordered = None
    if result.most_ordered is not None:
        most_ordered = DishSalesSchema.model_validate(result.most_ordered)

    response = AnalyticsResponse(
        start=result.start,
        end=result.end,
        total_orders=result.total_orders,
        total_earned=result.total_earned,
        avg_earned=result.avg_earned,
        most_ordered=most_ordered,
    )
    return JsonResponse(response.model_dump(mode="json"))
