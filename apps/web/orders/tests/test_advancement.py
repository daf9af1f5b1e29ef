"""Tests for queue advancement."""

from unittest.mock import patch

import pytest

from apps.web.orders.exceptions import (
    InvalidOrderState,
    OrderNotFound,
    OrderStateConflict,
    RestaurantNotFound,
)
from apps.web.orders.services import OrderLine, advance_queue, place_order
from apps.web.restaurant.models import Order, OrderState, Restaurant
from apps.web.restaurant.tests.factories import (
    MenuEntryFactory,
    OrderFactory,
    OwnerFactory,
    UserFactory,
)


def assert_queue_invariants(restaurant: Restaurant) -> None:
    """Queue holds only received/preparing orders; only the head may be preparing."""
    restaurant.refresh_from_db()
    states = dict(
        Order.objects.filter(pk__in=restaurant.queue).values_list("pk", "state")
    )
    for order_id in restaurant.queue:
        assert states[order_id] in (OrderState.RECEIVED, OrderState.PREPARING)

    preparing = [oid for oid in restaurant.queue if states[oid] == OrderState.PREPARING]
    assert len(preparing) <= 1
    if preparing:
        assert preparing[0] == restaurant.head


@pytest.fixture
def place(customer, restaurant, dish, menu_entry):
    """Place ``amount`` of the menu dish and return the order."""

    def _place(amount: int = 1, who=None) -> Order:
        (order,) = place_order(
            who or customer,
            [OrderLine(restaurant_id=restaurant.pk, dish_id=dish.pk, amount=amount)],
        )
        return order

    return _place


@pytest.mark.django_db
class TestAdvanceHead:
    """Advancing without an order id works on the queue head."""

    def test_received_head_starts_preparing(self, owner, restaurant, place, clock):
        order = place(amount=2)

        result = advance_queue(owner, now=clock)

        assert result.order.pk == order.pk
        assert result.previous_state == OrderState.RECEIVED
        assert result.state == OrderState.PREPARING
        order.refresh_from_db()
        restaurant.refresh_from_db()
        assert order.state == OrderState.PREPARING
        assert restaurant.queue == [order.pk]
        assert restaurant.last_preparation_start == clock()

    def test_preparing_head_becomes_ready_and_leaves_queue(
        self, owner, restaurant, place, clock
    ):
        order = place()
        advance_queue(owner, now=clock)

        result = advance_queue(owner, now=clock)

        assert result.state == OrderState.READY
        order.refresh_from_db()
        restaurant.refresh_from_db()
        assert order.state == OrderState.READY
        assert restaurant.queue == []

    def test_empty_queue_is_noop(self, owner, restaurant):
        result = advance_queue(owner)

        assert result.order is None
        restaurant.refresh_from_db()
        assert restaurant.queue == []
        assert restaurant.last_preparation_start is None

    def test_next_order_becomes_head(self, owner, restaurant, place, clock):
        first = place()
        second = place()

        advance_queue(owner, now=clock)  # first -> preparing
        advance_queue(owner, now=clock)  # first -> ready
        clock.advance(2)
        result = advance_queue(owner, now=clock)  # second -> preparing

        assert result.order.pk == second.pk
        restaurant.refresh_from_db()
        assert restaurant.queue == [second.pk]
        assert restaurant.last_preparation_start == clock()
        first.refresh_from_db()
        assert first.state == OrderState.READY

    def test_owner_without_restaurant(self):
        with pytest.raises(RestaurantNotFound):
            advance_queue(OwnerFactory())


@pytest.mark.django_db
class TestAdvanceSpecificOrder:
    """Advancing a named order."""

    def test_advance_head_by_id(self, owner, restaurant, place, clock):
        order = place()

        result = advance_queue(owner, order.pk, now=clock)

        assert result.state == OrderState.PREPARING
        restaurant.refresh_from_db()
        assert restaurant.last_preparation_start == clock()

    def test_order_from_other_restaurant_not_found(self, owner, restaurant, place):
        foreign = OrderFactory()

        with pytest.raises(OrderNotFound):
            advance_queue(owner, foreign.pk)

        foreign.refresh_from_db()
        assert foreign.state == OrderState.RECEIVED

    def test_unknown_order_not_found(self, owner, restaurant):
        with pytest.raises(OrderNotFound):
            advance_queue(owner, 123456)

    def test_non_head_cannot_start_preparing(self, owner, restaurant, place, clock):
        """Only the head may be preparing, so promoting a later order is refused."""
        place()
        second = place()

        with pytest.raises(InvalidOrderState):
            advance_queue(owner, second.pk, now=clock)

        second.refresh_from_db()
        restaurant.refresh_from_db()
        assert second.state == OrderState.RECEIVED
        assert restaurant.last_preparation_start is None
        assert_queue_invariants(restaurant)

    @pytest.mark.parametrize("state", [OrderState.READY, OrderState.COMPLETED])
    def test_terminal_states_rejected(self, owner, restaurant, state):
        order = OrderFactory(restaurant=restaurant, state=state)

        with pytest.raises(InvalidOrderState) as exc_info:
            advance_queue(owner, order.pk)

        assert exc_info.value.state == state
        order.refresh_from_db()
        assert order.state == state


@pytest.mark.django_db
class TestAdvanceConcurrency:
    """Two callers racing on the same order."""

    def test_concurrent_promotion_conflicts(self, owner, restaurant, place, clock):
        """Both callers saw 'received'; the second loses and nothing skips ahead."""
        order = place()
        stale = Order.objects.get(pk=order.pk)
        started = clock()

        advance_queue(owner, order.pk, now=clock)

        clock.advance(1)
        with (
            patch(
                "apps.web.orders.services.advancement._resolve_target",
                return_value=stale,
            ),
            pytest.raises(OrderStateConflict) as exc_info,
        ):
            advance_queue(owner, order.pk, now=clock)

        assert exc_info.value.expected_state == OrderState.RECEIVED
        order.refresh_from_db()
        restaurant.refresh_from_db()
        assert order.state == OrderState.PREPARING
        assert restaurant.last_preparation_start == started
        assert restaurant.queue == [order.pk]

    def test_concurrent_completion_conflicts(self, owner, restaurant, place, clock):
        """A stale 'preparing' read can't mark the order ready twice."""
        order = place()
        advance_queue(owner, now=clock)
        stale = Order.objects.get(pk=order.pk)
        advance_queue(owner, now=clock)

        with (
            patch(
                "apps.web.orders.services.advancement._resolve_target",
                return_value=stale,
            ),
            pytest.raises(OrderStateConflict),
        ):
            advance_queue(owner, order.pk, now=clock)

        order.refresh_from_db()
        assert order.state == OrderState.READY

    def test_sequential_double_advance_moves_one_step_each(
        self, owner, restaurant, place, clock
    ):
        order = place()

        first = advance_queue(owner, order.pk, now=clock)
        second = advance_queue(owner, order.pk, now=clock)

        assert (first.previous_state, first.state) == (
            OrderState.RECEIVED,
            OrderState.PREPARING,
        )
        assert (second.previous_state, second.state) == (
            OrderState.PREPARING,
            OrderState.READY,
        )
        with pytest.raises(InvalidOrderState):
            advance_queue(owner, order.pk, now=clock)


@pytest.mark.django_db
class TestQueueInvariants:
    """Invariants hold across a mixed sequence of placements and advances."""

    def test_invariants_through_busy_service(self, owner, restaurant, dish, clock):
        pizza = MenuEntryFactory(restaurant=restaurant, preparation_time=12)
        MenuEntryFactory(restaurant=restaurant, dish=dish, preparation_time=10)
        customers = [UserFactory() for _ in range(3)]

        for i, who in enumerate(customers):
            place_order(
                who,
                [
                    OrderLine(restaurant.pk, dish.pk, i + 1),
                    OrderLine(restaurant.pk, pizza.dish_id, 1),
                ],
            )
            assert_queue_invariants(restaurant)

        while True:
            result = advance_queue(owner, now=clock)
            assert_queue_invariants(restaurant)
            if result.order is None:
                break
            clock.advance(5)

        assert not Order.objects.filter(
            restaurant=restaurant,
            state__in=[OrderState.RECEIVED, OrderState.PREPARING],
        ).exists()
        assert Order.objects.filter(restaurant=restaurant).count() == 6
