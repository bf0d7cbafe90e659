"""Article service: visibility-scoped reads and author-only mutations.

The publish timestamp follows the publish flag: entering the published state
stamps ``published_at``, leaving it clears the stamp, and a save that keeps
the state leaves the stamp alone.
"""

import logging
import re
from typing import Any, Mapping, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_slug
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.html import strip_tags

from categories.models import Category
from categories.slugs import derive_slug
from core.identity import require_actor
from core.exceptions import NotFoundError, OwnershipError, ValidationError, storage_boundary
from .models import Article

logger = logging.getLogger(__name__)

SLUG_TAKEN = "This slug is already in use. Please choose another one."
SLUG_CONSTRAINTS = {"article_slug_ci_unique": ("slug", SLUG_TAKEN)}
TITLE_MAX_LENGTH = 255
SLUG_MAX_LENGTH = 255

_WHITESPACE = re.compile(r"\s+")


def apply_publish_state(article: Article, is_published: bool, now=None) -> Article:
    """Move ``article`` into the requested publish state in memory."""

    is_published = bool(is_published)
    if is_published and not article.is_published:
        article.published_at = now or timezone.now()
    elif not is_published:
        article.published_at = None
    article.is_published = is_published
    return article


def default_excerpt(content: str, length: Optional[int] = None) -> str:
    """Plain-text lead of ``content``, ellipsised when it had to be cut."""

    length = length or settings.ARTICLE_EXCERPT_LENGTH
    text = _WHITESPACE.sub(" ", strip_tags(content or "")).strip()
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


def visible_articles(actor, category_id=None):
    """Published articles, plus the actor's own drafts when authenticated."""

    articles = Article.objects.select_related("author", "category")
    if actor is None:
        articles = articles.filter(is_published=True)
    else:
        articles = articles.filter(Q(is_published=True) | Q(author=actor))
    if category_id not in (None, ""):
        articles = articles.filter(category=_resolve_category(category_id, field="category"))
    return articles.order_by("-updated_at")


def get_article(actor, article_id) -> Article:
    """A single article the actor may read; other authors' drafts look missing."""

    return _get_or_404(visible_articles(actor), article_id, "Article not found or not published.")


def create_article(actor, data: Mapping[str, Any]) -> Article:
    require_actor(actor)
    fields = _clean_fields(data)
    with storage_boundary("create article", SLUG_CONSTRAINTS), transaction.atomic():
        _ensure_slug_available(fields["slug"])
        category = _resolve_category(fields["category_id"])
        article = Article(
            title=fields["title"],
            slug=fields["slug"],
            excerpt=fields["excerpt"],
            content=fields["content"],
            featured_image=fields["featured_image"],
            category=category,
            author=actor,
        )
        apply_publish_state(article, fields["is_published"])
        article.save()
    logger.info("Article %s created by %s (status=%s)", article.pk, actor.pk, article.status)
    return article


def update_article(actor, article_id, data: Mapping[str, Any], partial: bool = False) -> Article:
    """Apply an author's edit.

    With ``partial`` omitted fields keep their stored values; otherwise the
    submission replaces the article and omitted optional fields fall back to
    their defaults (derived slug, excerpt from content, unpublished).
    """

    require_actor(actor)
    with storage_boundary("update article", SLUG_CONSTRAINTS), transaction.atomic():
        article = _get_owned(actor, article_id, Article.objects.select_for_update(), "update")
        if partial:
            data = {**_current_values(article), **data}
        fields = _clean_fields(data)
        _ensure_slug_available(fields["slug"], exclude_id=article.pk)
        category = _resolve_category(fields["category_id"])

        article.title = fields["title"]
        article.slug = fields["slug"]
        article.excerpt = fields["excerpt"]
        article.content = fields["content"]
        article.featured_image = fields["featured_image"]
        article.category = category
        was_published = article.is_published
        apply_publish_state(article, fields["is_published"])
        article.save()
    if was_published != article.is_published:
        logger.info("Article %s %s by %s", article.pk, "published" if article.is_published else "unpublished", actor.pk)
    else:
        logger.info("Article %s updated by %s", article.pk, actor.pk)
    return article


def delete_article(actor, article_id) -> None:
    require_actor(actor)
    with storage_boundary("delete article"), transaction.atomic():
        article = _get_owned(actor, article_id, Article.objects.select_for_update(), "delete")
        article.delete()
    logger.info("Article %s deleted by %s", article_id, actor.pk)


# Helpers --------------------------------------------------------------------


def _current_values(article: Article) -> dict[str, Any]:
    return {
        "title": article.title,
        "slug": article.slug,
        "excerpt": article.excerpt,
        "content": article.content,
        "featured_image": article.featured_image,
        "is_published": article.is_published,
        "category_id": article.category_id,
    }


def _clean_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    title = (data.get("title") or "").strip()
    content = data.get("content") or ""
    slug = (data.get("slug") or "").strip() or derive_slug(title, max_length=SLUG_MAX_LENGTH)
    excerpt = (data.get("excerpt") or "").strip() or default_excerpt(content)

    errors = {}
    if not title:
        errors["title"] = "Title is required"
    elif len(title) > TITLE_MAX_LENGTH:
        errors["title"] = f"Title must be at most {TITLE_MAX_LENGTH} characters."
    if not slug:
        errors["slug"] = "Slug is required"
    elif len(slug) > SLUG_MAX_LENGTH:
        errors["slug"] = f"Slug must be at most {SLUG_MAX_LENGTH} characters."
    else:
        try:
            validate_slug(slug)
        except DjangoValidationError:
            errors["slug"] = "Enter a valid slug consisting of letters, numbers, underscores or hyphens."
    if not strip_tags(content).strip():
        errors["content"] = "Content is required"
    if errors:
        raise ValidationError(errors)

    return {
        "title": title,
        "slug": slug,
        "excerpt": excerpt,
        "content": content,
        "featured_image": (data.get("featured_image") or "").strip(),
        "is_published": bool(data.get("is_published", False)),
        "category_id": data.get("category_id") or None,
    }


def _ensure_slug_available(slug: str, exclude_id=None) -> None:
    existing = Article.objects.filter(slug__iexact=slug)
    if exclude_id is not None:
        existing = existing.exclude(pk=exclude_id)
    if existing.exists():
        raise ValidationError.for_field("slug", SLUG_TAKEN)


def _resolve_category(category_id, field: str = "category_id") -> Optional[Category]:
    if category_id in (None, ""):
        return None
    try:
        return Category.objects.get(pk=category_id)
    except (Category.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFoundError({field: ["Category not found."]})


def _get_or_404(queryset, article_id, message: str = "Article not found.") -> Article:
    try:
        return queryset.get(pk=article_id)
    except (Article.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFoundError(message)


def _get_owned(actor, article_id, queryset, verb: str) -> Article:
    article = _get_or_404(queryset, article_id)
    if article.author_id != actor.pk:
        logger.warning("User %s tried to %s article %s owned by %s", actor.pk, verb, article.pk, article.author_id)
        raise OwnershipError(f"You can only {verb} your own articles.")
    return article


__all__ = [
    "apply_publish_state",
    "default_excerpt",
    "visible_articles",
    "get_article",
    "create_article",
    "update_article",
    "delete_article",
]
