"""Article model: authored content, optionally filed under a category."""

import uuid

from django.conf import settings
from django.db import models
from django.db.models.functions import Lower


class Article(models.Model):
    """Article owned by its author.

    ``published_at`` is set when the article enters the published state and
    cleared when it leaves it; see ``articles.services.apply_publish_state``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    excerpt = models.TextField(blank=True)
    content = models.TextField()
    featured_image = models.URLField(max_length=500, blank=True)
    is_published = models.BooleanField(default=False)
    published_at = models.DateTimeField(null=True, blank=True)
    category = models.ForeignKey(
        "categories.Category",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="articles",
    )
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="articles")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(Lower("slug"), name="article_slug_ci_unique"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.title

    @property
    def status(self) -> str:
        return "published" if self.is_published else "draft"


__all__ = ["Article"]
