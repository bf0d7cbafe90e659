"""Category hierarchy manager.

Every mutation takes the resolved identity (``actor``) explicitly and keeps
the parent relation a forest: no self-parenting, no cycles, unique slugs.
The tree view is recomputed from storage on every read.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_slug
from django.db import transaction
from django.db.models import Count
from django.db.models.functions import Lower
from django.utils import timezone

from core.identity import require_actor
from core.exceptions import NotFoundError, ValidationError, storage_boundary
from .models import NAME_MAX_LENGTH, SLUG_MAX_LENGTH, Category
from .slugs import derive_slug

logger = logging.getLogger(__name__)

SLUG_TAKEN = "This slug is already in use. Please choose another one."
SLUG_INVALID = "Enter a valid slug consisting of letters, numbers, underscores or hyphens."
SLUG_CONSTRAINTS = {"category_slug_ci_unique": ("slug", SLUG_TAKEN)}


@dataclass
class CategoryNode:
    """One node of the materialized tree, decoupled from rendering."""

    id: Any
    name: str
    slug: str
    description: str = ""
    parent_id: Any = None
    depth: int = 0
    article_count: int = 0
    children_count: int = 0
    children: list["CategoryNode"] = field(default_factory=list)


@dataclass(frozen=True)
class DeleteSummary:
    """What a category deletion did to the rows around it."""

    category_id: Any
    new_parent_id: Any
    reparented_children: int
    detached_articles: int


def _key(value) -> Optional[str]:
    """Normalise an id (UUID, int, or str) for comparisons; blanks are None."""
    if value is None or value == "":
        return None
    return str(value)


def _attr(item, name: str, default=None):
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _parent_of(item):
    if isinstance(item, dict):
        return item.get("parent_id", item.get("parentId"))
    return getattr(item, "parent_id", None)


def _sort_key(node: CategoryNode) -> tuple[str, str]:
    return (node.name or "").casefold(), str(node.id)


# Pure tree operations -------------------------------------------------------


def descendant_ids(category_id, categories: Optional[Iterable[Any]] = None) -> set[str]:
    """Return the descendant closure of ``category_id`` as a set of id strings.

    ``categories`` is any iterable of objects or dicts carrying ``id`` and
    ``parent_id``; when omitted the closure is computed from storage. The
    start node itself is never part of its own closure, even if the stored
    data already contains a cycle.
    """

    if categories is None:
        categories = Category.objects.values("id", "parent_id")

    children_of: dict[Optional[str], list[str]] = defaultdict(list)
    for item in categories:
        children_of[_key(_parent_of(item))].append(_key(_attr(item, "id")))

    start = _key(category_id)
    seen = {start}
    closure: set[str] = set()
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for child in children_of.get(current, ()):
            if child in seen:
                continue
            seen.add(child)
            closure.add(child)
            queue.append(child)
    return closure


def is_descendant(candidate_id, ancestor_id, categories: Optional[Iterable[Any]] = None) -> bool:
    """True when ``candidate_id`` lies strictly below ``ancestor_id``."""

    return _key(candidate_id) in descendant_ids(ancestor_id, categories)


def build_tree(categories: Iterable[Any]) -> list[CategoryNode]:
    """Materialize a flat list of categories into a sorted forest.

    Siblings (and roots) are ordered by case-folded name, then by id. A node
    whose parent is missing from the input is promoted to the top level. If
    the input already contains a cycle, one member of each cycle is promoted
    so every node appears exactly once.
    """

    nodes: dict[str, CategoryNode] = {}
    for item in categories:
        key = _key(_attr(item, "id"))
        if key is None or key in nodes:
            continue
        nodes[key] = CategoryNode(
            id=_attr(item, "id"),
            name=_attr(item, "name", "") or "",
            slug=_attr(item, "slug", "") or "",
            description=_attr(item, "description", "") or "",
            parent_id=_parent_of(item),
            article_count=_attr(item, "article_count", 0) or 0,
        )

    roots: list[CategoryNode] = []
    for key, node in nodes.items():
        parent = nodes.get(_key(node.parent_id))
        if parent is None or parent is node:
            if _key(node.parent_id) is not None and parent is None:
                logger.warning("Category %s references missing parent %s", key, node.parent_id)
            roots.append(node)
        else:
            parent.children.append(node)

    reached: set[str] = set()

    def mark(root: CategoryNode) -> None:
        stack = [root]
        while stack:
            current = stack.pop()
            reached.add(_key(current.id))
            stack.extend(current.children)

    for root in roots:
        mark(root)

    # Anything unreached hangs off a cycle; promote one cycle member at a time.
    for node in sorted(nodes.values(), key=_sort_key):
        if _key(node.id) in reached:
            continue
        seen: set[str] = set()
        member = node
        while _key(member.id) not in seen:
            seen.add(_key(member.id))
            member = nodes[_key(member.parent_id)]
        logger.warning("Category cycle detected at %s; promoting to top level", member.id)
        siblings = nodes[_key(member.parent_id)].children
        siblings[:] = [child for child in siblings if child is not member]
        roots.append(member)
        mark(member)

    roots.sort(key=_sort_key)
    stack = [(root, 0) for root in roots]
    while stack:
        current, depth = stack.pop()
        current.depth = depth
        current.children.sort(key=_sort_key)
        current.children_count = len(current.children)
        stack.extend((child, depth + 1) for child in current.children)
    return roots


# Queries --------------------------------------------------------------------


def list_categories():
    """Every category with child and article counts, ordered by name."""

    return (
        Category.objects.select_related("parent")
        .annotate(
            children_count=Count("children", distinct=True),
            article_count=Count("articles", distinct=True),
        )
        .order_by(Lower("name"), "id")
    )


def get_category(category_id) -> Category:
    """Fetch one annotated category or raise ``NotFoundError``."""

    return _get_or_404(list_categories(), category_id)


def category_tree() -> list[CategoryNode]:
    return build_tree(list_categories())


def parent_choices(category_id=None) -> list[Category]:
    """Categories that may become the parent of ``category_id``.

    With no ``category_id`` (a new category) every category qualifies;
    otherwise the category itself and its descendant closure are excluded.
    """

    categories = list(Category.objects.order_by(Lower("name"), "id"))
    if _key(category_id) is None:
        return categories
    excluded = descendant_ids(category_id, categories) | {_key(category_id)}
    return [category for category in categories if _key(category.pk) not in excluded]


# Mutations ------------------------------------------------------------------


def create_category(actor, *, name, slug=None, description=None, parent_id=None) -> Category:
    """Validate and insert a category.

    Order: required fields, slug uniqueness, parent existence. A duplicate
    slug is rejected, never suffixed.
    """

    require_actor(actor)
    name, slug = _clean_fields(name, slug)
    with storage_boundary("create category", SLUG_CONSTRAINTS), transaction.atomic():
        _ensure_slug_available(slug)
        parent = _resolve_parent(parent_id)
        category = Category.objects.create(
            name=name,
            slug=slug,
            description=(description or "").strip(),
            parent=parent,
        )
    logger.info("Category %s (%s) created by %s", category.pk, category.slug, actor.pk)
    return category


def update_category(actor, category_id, *, name, slug=None, description=None, parent_id=None) -> Category:
    """Validate and apply an update, rejecting self-parenting and cycles."""

    require_actor(actor)
    with storage_boundary("update category", SLUG_CONSTRAINTS), transaction.atomic():
        category = _get_or_404(Category.objects.select_for_update(), category_id)
        name, slug = _clean_fields(name, slug)
        _ensure_slug_available(slug, exclude_id=category.pk)

        if _key(parent_id) is not None and _key(parent_id) == _key(category.pk):
            raise ValidationError.for_field("parent_id", "A category cannot be its own parent.")
        parent = _resolve_parent(parent_id)
        if parent is not None and is_descendant(parent.pk, category.pk):
            raise ValidationError.for_field(
                "parent_id", "A category cannot be moved under one of its own subcategories."
            )

        category.name = name
        category.slug = slug
        category.description = (description or "").strip()
        category.parent = parent
        category.save()
    logger.info("Category %s updated by %s", category.pk, actor.pk)
    return category


def delete_category(actor, category_id) -> DeleteSummary:
    """Delete a category, promoting its children and detaching its articles.

    Direct children move to the deleted category's parent (top-level when it
    had none); articles filed under it become uncategorised. All of it runs
    in one transaction.
    """

    require_actor(actor)
    with storage_boundary("delete category"), transaction.atomic():
        category = _get_or_404(Category.objects.select_for_update(), category_id)
        new_parent_id = category.parent_id
        children = Category.objects.filter(parent_id=category.pk)
        if new_parent_id is not None and children.filter(pk=new_parent_id).exists():
            # Parent is also a direct child: a stored two-node cycle.
            logger.warning("Category %s is in a parent cycle; promoting its children", category.pk)
            new_parent_id = None
        reparented = children.update(
            parent_id=new_parent_id, updated_at=timezone.now()
        )
        detached = category.articles.update(category=None)
        category.delete()
    logger.info(
        "Category %s deleted by %s (%d children moved to %s, %d articles detached)",
        category_id,
        actor.pk,
        reparented,
        new_parent_id,
        detached,
    )
    return DeleteSummary(
        category_id=category_id,
        new_parent_id=new_parent_id,
        reparented_children=reparented,
        detached_articles=detached,
    )


# Helpers --------------------------------------------------------------------


def _clean_fields(name, slug) -> tuple[str, str]:
    name = (name or "").strip()
    slug = (slug or "").strip() or derive_slug(name, max_length=SLUG_MAX_LENGTH)

    errors = {}
    if not name:
        errors["name"] = "Name is required"
    elif len(name) > NAME_MAX_LENGTH:
        errors["name"] = f"Name must be at most {NAME_MAX_LENGTH} characters."
    if not slug:
        errors["slug"] = "Slug is required"
    elif len(slug) > SLUG_MAX_LENGTH:
        errors["slug"] = f"Slug must be at most {SLUG_MAX_LENGTH} characters."
    else:
        try:
            validate_slug(slug)
        except DjangoValidationError:
            errors["slug"] = SLUG_INVALID
    if errors:
        raise ValidationError(errors)
    return name, slug


def _ensure_slug_available(slug: str, exclude_id=None) -> None:
    existing = Category.objects.filter(slug__iexact=slug)
    if exclude_id is not None:
        existing = existing.exclude(pk=exclude_id)
    if existing.exists():
        raise ValidationError.for_field("slug", SLUG_TAKEN)


def _resolve_parent(parent_id) -> Optional[Category]:
    if _key(parent_id) is None:
        return None
    try:
        return Category.objects.get(pk=parent_id)
    except (Category.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFoundError({"parent_id": ["Parent category not found."]})


def _get_or_404(queryset, category_id) -> Category:
    try:
        return queryset.get(pk=category_id)
    except (Category.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFoundError("Category not found.")


__all__ = [
    "CategoryNode",
    "DeleteSummary",
    "build_tree",
    "descendant_ids",
    "is_descendant",
    "list_categories",
    "get_category",
    "category_tree",
    "parent_choices",
    "create_category",
    "update_category",
    "delete_category",
]
