"""Category model: a node in the forest that organises articles."""

import uuid

from django.db import models
from django.db.models.functions import Lower

NAME_MAX_LENGTH = 120
SLUG_MAX_LENGTH = 140


class Category(models.Model):
    """Category with an optional parent; ``parent=None`` means top-level.

    Slugs are unique case-insensitively at the storage level. Cycle freedom is
    enforced only by ``categories.services``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=NAME_MAX_LENGTH)
    slug = models.SlugField(max_length=SLUG_MAX_LENGTH)
    description = models.TextField(blank=True)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="children",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"
        constraints = [
            models.UniqueConstraint(Lower("slug"), name="category_slug_ci_unique"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


__all__ = ["Category", "NAME_MAX_LENGTH", "SLUG_MAX_LENGTH"]
