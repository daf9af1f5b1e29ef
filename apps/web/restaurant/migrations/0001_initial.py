import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Restaurant",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=50)),
                ("phone_number", models.CharField(blank=True, max_length=20)),
                ("address", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "queue",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Order ids awaiting preparation, head first",
                    ),
                ),
                (
                    "last_preparation_start",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the current head started preparing",
                        null=True,
                    ),
                ),
                (
                    "owner",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="restaurant",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Dish",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=100)),
                ("category", models.CharField(max_length=20)),
                ("image_url", models.URLField(blank=True)),
                (
                    "ingredients",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text='List of ingredients (e.g., ["flour", "tomato"])',
                    ),
                ),
                (
                    "restaurant",
                    models.ForeignKey(
                        blank=True,
                        help_text="Null for catalogue dishes",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="custom_dishes",
                        to="restaurant.restaurant",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "dishes",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="MenuEntry",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "price",
                    models.PositiveIntegerField(
                        help_text="Price in cents",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "preparation_time",
                    models.PositiveIntegerField(
                        help_text="Minutes to prepare one unit",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "dish",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="menu_entries",
                        to="restaurant.dish",
                    ),
                ),
                (
                    "restaurant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="menu_entries",
                        to="restaurant.restaurant",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "menu entries",
                "ordering": ["pk"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("restaurant", "dish"),
                        name="unique_dish_per_restaurant_menu",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "amount",
                    models.PositiveIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("price", models.PositiveIntegerField(help_text="Total in cents")),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("received", "Received"),
                            ("preparing", "Preparing"),
                            ("ready", "Ready"),
                            ("completed", "Completed"),
                        ],
                        default="received",
                        max_length=20,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "dish",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="restaurant.dish",
                    ),
                ),
                (
                    "restaurant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="orders",
                        to="restaurant.restaurant",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["customer", "-created_at"],
                        name="order_customer_created_idx",
                    ),
                    models.Index(
                        fields=["restaurant", "-created_at"],
                        name="order_restaurant_created_idx",
                    ),
                    models.Index(
                        fields=["restaurant", "state"],
                        name="order_restaurant_state_idx",
                    ),
                ],
            },
        ),
    ]
