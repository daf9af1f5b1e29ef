"""Order queue exceptions."""


class OrderQueueError(Exception):
    """Base exception for order queue errors."""

    def __init__(self, message: str, order_id: int | None = None) -> None:
        self.message = message
        self.order_id = order_id
        super().__init__(message)


class NotFoundError(OrderQueueError):
    """Referenced order or restaurant does not exist (or isn't yours)."""


class OrderNotFound(NotFoundError):
    """Order does not exist or is outside the caller's scope."""


class RestaurantNotFound(NotFoundError):
    """No restaurant exists for the given id or owner."""


class OrderStateConflict(OrderQueueError):
    """
    Conditional state update lost to a concurrent writer.

    Safe to retry: the caller should reload and decide again.
    """

    def __init__(
        self,
        message: str,
        order_id: int | None = None,
        expected_state: str | None = None,
    ) -> None:
        super().__init__(message, order_id)
        self.expected_state = expected_state


class InvalidOrderState(OrderQueueError):
    """Requested transition is not allowed from the order's current state."""

    def __init__(
        self,
        message: str,
        order_id: int | None = None,
        state: str | None = None,
    ) -> None:
        super().__init__(message, order_id)
        self.state = state


class OrderValidationError(OrderQueueError):
    """Order placement request references something that can't be ordered."""

    def __init__(self, message: str, field: str = "") -> None:
        super().__init__(message)
        self.field = field
