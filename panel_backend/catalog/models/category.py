# catalog/models/category.py

from django.db import models


class ServiceCategory(models.Model):
    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=120, unique=True)
    icon = models.CharField(max_length=64, default="Globe")
    color = models.CharField(max_length=16, default="#6366F1")
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "service categories"

    def __str__(self):
        return self.name
