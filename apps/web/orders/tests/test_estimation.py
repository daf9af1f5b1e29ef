"""Tests for wait-time estimation."""

import logging
from datetime import timedelta

import pytest

from apps.web.orders.exceptions import OrderNotFound
from apps.web.orders.services import (
    OrderLine,
    advance_queue,
    build_wait_estimate,
    confirm_pickup,
    estimate_ready_at,
    estimate_wait,
    place_order,
)
from apps.web.restaurant.models import MenuEntry, Order, Restaurant
from apps.web.restaurant.tests.factories import MenuEntryFactory, OrderFactory


@pytest.fixture
def place(customer, restaurant, dish, menu_entry):
    """Place ``amount`` portions of the 10-minute dish."""

    def _place(amount: int = 1) -> Order:
        (order,) = place_order(
            customer,
            [OrderLine(restaurant_id=restaurant.pk, dish_id=dish.pk, amount=amount)],
        )
        return order

    return _place


@pytest.mark.django_db
class TestOrderWalkthrough:
    """One 2-portion order through its life, with a simulated clock."""

    def test_received_head_gets_full_time(self, place, clock):
        order = place(amount=2)

        assert estimate_wait(order.pk, now=clock) == 20

    def test_just_started_preparing(self, owner, place, clock):
        order = place(amount=2)
        advance_queue(owner, now=clock)

        assert estimate_wait(order.pk, now=clock) == pytest.approx(20)

    def test_elapsed_time_comes_off(self, owner, place, clock):
        order = place(amount=2)
        advance_queue(owner, now=clock)

        clock.advance(5)

        assert estimate_wait(order.pk, now=clock) == pytest.approx(15)

    def test_ready_order_waits_zero(self, owner, place, clock):
        order = place(amount=2)
        advance_queue(owner, now=clock)
        clock.advance(5)
        advance_queue(owner, now=clock)

        assert estimate_wait(order.pk, now=clock) == 0

    def test_second_order_waits_behind_partly_done_head(self, owner, place, clock):
        first = place(amount=2)
        advance_queue(owner, now=clock)
        clock.advance(3)
        second = place(amount=1)

        assert estimate_wait(first.pk, now=clock) == pytest.approx(17)
        assert estimate_wait(second.pk, now=clock) == pytest.approx(27)

    def test_completed_order_waits_zero(self, customer, owner, place, clock):
        order = place()
        advance_queue(owner, now=clock)
        advance_queue(owner, now=clock)
        confirm_pickup(customer, order.pk)

        assert estimate_wait(order.pk, now=clock) == 0


@pytest.mark.django_db
class TestEstimateRules:
    """Edge cases of the summation."""

    def test_overrun_head_contributes_zero(self, owner, place, clock):
        """A head taking longer than planned never makes the wait negative."""
        first = place(amount=1)
        second = place(amount=1)
        advance_queue(owner, now=clock)

        clock.advance(25)

        assert estimate_wait(first.pk, now=clock) == 0
        assert estimate_wait(second.pk, now=clock) == 10

    def test_clock_before_start_counts_no_progress(self, owner, place, clock):
        order = place(amount=2)
        advance_queue(owner, now=clock)

        clock.advance(-3)

        assert estimate_wait(order.pk, now=clock) == 20

    def test_received_head_gets_no_discount(self, owner, restaurant, place, clock):
        """A stale preparation start is ignored while the head is only received."""
        first = place()
        advance_queue(owner, now=clock)
        advance_queue(owner, now=clock)
        second = place(amount=3)

        clock.advance(10)
        restaurant.refresh_from_db()

        assert restaurant.last_preparation_start is not None
        assert restaurant.queue == [second.pk]
        assert estimate_wait(second.pk, now=clock) == 30
        assert estimate_wait(first.pk, now=clock) == 0

    def test_only_orders_ahead_count(self, restaurant, dish, menu_entry, customer, clock):
        """Orders behind the target don't add to its wait."""
        salad = MenuEntryFactory(restaurant=restaurant, preparation_time=4)
        first, second, third = place_order(
            customer,
            [
                OrderLine(restaurant.pk, salad.dish_id, 2),
                OrderLine(restaurant.pk, dish.pk, 1),
                OrderLine(restaurant.pk, salad.dish_id, 1),
            ],
        )

        assert estimate_wait(first.pk, now=clock) == 8
        assert estimate_wait(second.pk, now=clock) == 18
        assert estimate_wait(third.pk, now=clock) == 22

    def test_dish_removed_from_menu_counts_zero(
        self, restaurant, place, clock, caplog
    ):
        first = place(amount=2)
        pizza = MenuEntryFactory(restaurant=restaurant, preparation_time=12)
        (second,) = place_order(
            first.customer, [OrderLine(restaurant.pk, pizza.dish_id, 1)]
        )
        MenuEntry.objects.filter(pk=pizza.pk).delete()

        with caplog.at_level(logging.WARNING):
            minutes = estimate_wait(second.pk, now=clock)

        assert minutes == 20
        assert "not on restaurant" in caplog.text

    def test_dangling_queue_entry_counts_zero(self, restaurant, place, clock, caplog):
        first = place()
        second = place()
        Restaurant.objects.filter(pk=restaurant.pk).update(queue=[999999, first.pk, second.pk])

        with caplog.at_level(logging.WARNING):
            minutes = estimate_wait(second.pk, now=clock)

        assert minutes == 20
        assert "missing order 999999" in caplog.text

    def test_never_queued_order_waits_zero(self, clock):
        order = OrderFactory()

        estimate = build_wait_estimate(order.pk, now=clock)

        assert estimate.minutes == 0
        assert estimate.is_queued is False
        assert estimate.ready_at == clock()

    def test_unknown_order(self, clock):
        with pytest.raises(OrderNotFound):
            estimate_wait(424242, now=clock)

    def test_ready_at_projection(self, place, clock):
        place(amount=1)
        second = place(amount=2)

        estimate = build_wait_estimate(second.pk, now=clock)

        assert estimate.position == 1
        assert estimate.minutes == 30
        assert estimate.ready_at == clock() + timedelta(minutes=30)

    def test_estimate_ready_at(self, owner, place, clock):
        order = place(amount=2)
        advance_queue(owner, now=clock)
        clock.advance(5)

        assert estimate_ready_at(order.pk, now=clock) == clock() + timedelta(minutes=15)

    def test_estimate_ready_at_for_ready_order(self, owner, place, clock):
        order = place()
        advance_queue(owner, now=clock)
        advance_queue(owner, now=clock)

        assert estimate_ready_at(order.pk, now=clock) == clock()


@pytest.mark.django_db
class TestMonotonicity:
    """With a fixed queue position, the estimate only goes down as time passes."""

    def test_estimate_never_increases_while_preparing(self, owner, place, clock):
        head = place(amount=2)
        behind = place(amount=1)
        advance_queue(owner, now=clock)

        head_estimates = []
        behind_estimates = []
        for _ in range(30):
            head_estimates.append(estimate_wait(head.pk, now=clock))
            behind_estimates.append(estimate_wait(behind.pk, now=clock))
            clock.advance(0.75)

        for series in (head_estimates, behind_estimates):
            assert all(later <= earlier for earlier, later in zip(series, series[1:]))
            assert min(series) >= 0
        assert head_estimates[-1] == 0
        assert behind_estimates[-1] == 10
