"""Seed a demo author, the starter category tree, and sample articles."""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from articles.models import Article
from articles.services import apply_publish_state, default_excerpt
from authentication.passwords import hash_password
from categories.models import Category

DEMO_EMAIL = "author@example.com"
DEMO_PASSWORD = "authorpass"

# (name, slug, description, parent name)
SEED_CATEGORIES = [
    ("Technology", "technology", "Articles about the latest in technology and software development", None),
    ("Web Development", "web-development", "Frontend, backend, and full-stack web development", "Technology"),
    ("Mobile Development", "mobile-development", "iOS, Android, and cross-platform mobile app development", "Technology"),
    ("Design", "design", "UI/UX design, graphic design, and design thinking", None),
    ("Business", "business", "Business strategies, startups, and entrepreneurship", None),
    ("Productivity", "productivity", "Tips and tools for better productivity", None),
    ("Tutorials", "tutorials", "Step-by-step guides and how-tos", None),
]

# (title, slug, category slug, published)
SEED_ARTICLES = [
    ("Getting Started with Django", "getting-started-with-django", "web-development", True),
    ("Designing for Small Screens", "designing-for-small-screens", "design", True),
    ("Notes on Offline Sync", "notes-on-offline-sync", "mobile-development", False),
]


def create_seed_categories() -> dict[str, Category]:
    """Upsert the starter tree by slug; parents first. Returns slug -> Category."""

    created: dict[str, Category] = {}
    by_name: dict[str, Category] = {}
    for name, slug, description, parent_name in sorted(SEED_CATEGORIES, key=lambda row: row[3] is not None):
        parent = by_name.get(parent_name) if parent_name else None
        category, _ = Category.objects.update_or_create(
            slug=slug,
            defaults={"name": name, "description": description, "parent": parent},
        )
        created[slug] = category
        by_name[name] = category
    return created


def create_demo_author():
    User = get_user_model()
    author, _ = User.objects.get_or_create(
        email=DEMO_EMAIL,
        defaults={"name": "Demo Author", "password_hash": hash_password(DEMO_PASSWORD)},
    )
    return author


def create_seed_articles(author, categories: dict[str, Category]) -> list[Article]:
    articles = []
    for title, slug, category_slug, published in SEED_ARTICLES:
        content = f"<p>{title}. Sample content created by the seed command.</p>"
        article = Article.objects.filter(slug=slug).first()
        if article is None:
            article = Article(
                title=title,
                slug=slug,
                content=content,
                excerpt=default_excerpt(content),
                category=categories.get(category_slug),
                author=author,
            )
            apply_publish_state(article, published)
            article.save()
        articles.append(article)
    return articles


class Command(BaseCommand):
    help = (
        "Seed a demo author, the starter category tree, and sample articles. "
        "Use --reset to clear previously seeded data first."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Delete the seeded author, categories, and articles before seeding.",
        )

    def handle(self, *args, **options):
        with transaction.atomic():
            if options.get("reset"):
                self._reset_seeded_data()

            self.stdout.write("Seeding content...")
            categories = create_seed_categories()
            author = create_demo_author()
            articles = create_seed_articles(author, categories)
        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: {len(categories)} categories, {len(articles)} articles, author {DEMO_EMAIL}."
            )
        )

    def _reset_seeded_data(self) -> None:
        """Remove only what this command creates."""
        self.stdout.write("Resetting previously seeded content...")
        Article.objects.filter(slug__in=[row[1] for row in SEED_ARTICLES]).delete()
        # Children first so no seeded category is left pointing at a deleted one.
        for _, slug, _, _ in sorted(SEED_CATEGORIES, key=lambda row: row[3] is None):
            Category.objects.filter(slug=slug).delete()
        get_user_model().objects.filter(email=DEMO_EMAIL).delete()
        self.stdout.write(self.style.WARNING("Seeded content cleared."))
