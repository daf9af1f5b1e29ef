"""
Rebuild restaurant preparation queues from stored orders.

Repairs queues left inconsistent by non-transactional placement
(ORDERS_ATOMIC_PLACEMENT off) or by manual data edits.

Usage:
    uv run python manage.py rebuild_queues
    uv run python manage.py rebuild_queues --restaurant 42
    uv run python manage.py rebuild_queues --dry-run
"""

import logging
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from apps.web.orders.services import rebuild_queue
from apps.web.restaurant.models import Restaurant

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Rebuild restaurant queues from received/preparing orders"

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument(
            "--restaurant",
            type=int,
            help="Only rebuild this restaurant's queue",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report differences without writing",
        )

    def handle(self, *_args: Any, **options: Any) -> None:
        dry_run = options["dry_run"]
        restaurants = Restaurant.objects.filter(is_active=True)

        if options["restaurant"] is not None:
            restaurants = restaurants.filter(pk=options["restaurant"])
            if not restaurants.exists():
                raise CommandError(f"Restaurant {options['restaurant']} not found")

        changed = 0
        for restaurant in restaurants:
            before = list(restaurant.queue)
            after = rebuild_queue(restaurant, dry_run=dry_run)
            if before != after:
                changed += 1
                self.stdout.write(f"{restaurant.name} (#{restaurant.pk}): {before} -> {after}")

        verb = "would change" if dry_run else "rebuilt"
        self.stdout.write(f"{changed} queue(s) {verb}")
