import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("providers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ServiceCategory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("slug", models.SlugField(max_length=120, unique=True)),
                ("icon", models.CharField(default="Globe", max_length=64)),
                ("color", models.CharField(default="#6366F1", max_length=16)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "verbose_name_plural": "service categories",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Service",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "price_per_thousand",
                    models.DecimalField(
                        decimal_places=4,
                        help_text="Selling price for 1000 units.",
                        max_digits=12,
                    ),
                ),
                ("min_quantity", models.PositiveIntegerField(default=100)),
                ("max_quantity", models.PositiveIntegerField(default=100000)),
                ("is_active", models.BooleanField(default=True)),
                ("provider_service_id", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "category",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="services",
                        to="catalog.servicecategory",
                    ),
                ),
                (
                    "provider",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="services",
                        to="providers.provider",
                    ),
                ),
            ],
            options={
                "ordering": ["category__name", "name"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("provider__isnull", False), ("provider_service_id__isnull", False)),
                        fields=("provider", "provider_service_id"),
                        name="uniq_service_per_provider_item",
                    )
                ],
            },
        ),
    ]
