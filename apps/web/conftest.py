"""
Pytest configuration for Django app tests.
"""

from datetime import UTC, datetime, timedelta

import pytest

from apps.web.core.models import User
from apps.web.restaurant.models import Dish, MenuEntry, Restaurant
from apps.web.restaurant.tests.factories import (
    DishFactory,
    MenuEntryFactory,
    OwnerFactory,
    RestaurantFactory,
    UserFactory,
)


class FakeClock:
    """Callable clock for services that take ``now=``."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, minutes: float) -> None:
        self.current += timedelta(minutes=minutes)


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at 2025-01-01 12:00 UTC until advanced."""
    return FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def customer() -> User:
    """A customer account."""
    return UserFactory(username="mario", first_name="Mario", last_name="Rossi")


@pytest.fixture
def owner() -> User:
    """A restaurant owner account."""
    return OwnerFactory(username="luigi")


@pytest.fixture
def restaurant(owner: User) -> Restaurant:
    """The owner's restaurant, with an empty queue."""
    return RestaurantFactory(owner=owner, name="Da Luigi")


@pytest.fixture
def dish() -> Dish:
    """A catalogue dish."""
    return DishFactory(name="Carbonara")


@pytest.fixture
def menu_entry(restaurant: Restaurant, dish: Dish) -> MenuEntry:
    """Carbonara on the restaurant menu: 8.50, 10 minutes per portion."""
    return MenuEntryFactory(
        restaurant=restaurant, dish=dish, price=850, preparation_time=10
    )
