"""Article service and endpoint tests: publish state, visibility, ownership."""

from __future__ import annotations

from datetime import timedelta

from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from articles import services
from articles.models import Article
from core.exceptions import AuthenticationRequired, NotFoundError, OwnershipError, ValidationError
from tests.utils import FakeRedisMixin, auth_client, create_user, seed_categories


class PublishStateTests(SimpleTestCase):
    def test_publishing_stamps_time(self):
        now = timezone.now()
        article = services.apply_publish_state(Article(is_published=False), True, now=now)

        self.assertTrue(article.is_published)
        self.assertEqual(article.published_at, now)

    def test_republishing_keeps_original_stamp(self):
        first = timezone.now() - timedelta(days=3)
        article = Article(is_published=True, published_at=first)

        services.apply_publish_state(article, True)

        self.assertEqual(article.published_at, first)

    def test_unpublishing_clears_stamp(self):
        article = Article(is_published=True, published_at=timezone.now())

        services.apply_publish_state(article, False)

        self.assertFalse(article.is_published)
        self.assertIsNone(article.published_at)

    def test_draft_stays_unstamped(self):
        article = services.apply_publish_state(Article(is_published=False), False)
        self.assertIsNone(article.published_at)

    def test_status_follows_flag(self):
        self.assertEqual(Article(is_published=True).status, "published")
        self.assertEqual(Article(is_published=False).status, "draft")


class DefaultExcerptTests(SimpleTestCase):
    def test_strips_markup_and_collapses_whitespace(self):
        self.assertEqual(services.default_excerpt("<p>Hello\n\n  <b>world</b></p>"), "Hello world")

    @override_settings(ARTICLE_EXCERPT_LENGTH=10)
    def test_truncates_with_ellipsis(self):
        self.assertEqual(services.default_excerpt("<p>abcdefghij klmnop</p>"), "abcdefghij...")

    def test_explicit_length(self):
        self.assertEqual(services.default_excerpt("one two three", length=4), "one...")


class ArticleServiceTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.author = create_user("author@example.com")
        cls.other = create_user("other@example.com")
        cls.categories = seed_categories()
        cls.published = Article.objects.create(
            title="Public",
            slug="public",
            content="<p>Out</p>",
            author=cls.author,
            is_published=True,
            published_at=timezone.now(),
            category=cls.categories["design"],
        )
        cls.draft = Article.objects.create(title="Draft", slug="draft", content="<p>WIP</p>", author=cls.author)

    def test_create_derives_slug_and_excerpt(self):
        article = services.create_article(
            self.other,
            {"title": "Tips & Tricks", "content": "<p>Use <em>shortcuts</em>.</p>", "is_published": True},
        )

        self.assertEqual(article.slug, "tips-and-tricks")
        self.assertEqual(article.excerpt, "Use shortcuts.")
        self.assertEqual(article.author, self.other)
        self.assertIsNotNone(article.published_at)

    def test_create_reports_all_missing_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_article(self.author, {"title": " ", "content": "<p> </p>"})

        self.assertEqual(set(ctx.exception.fields), {"title", "slug", "content"})

    def test_create_rejects_duplicate_slug_case_insensitively(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_article(self.other, {"title": "x", "slug": "PUBLIC", "content": "body"})
        self.assertEqual(ctx.exception.fields, ["slug"])

    def test_create_with_unknown_category(self):
        with self.assertRaises(NotFoundError):
            services.create_article(
                self.author,
                {"title": "x", "content": "body", "category_id": "00000000-0000-0000-0000-000000000000"},
            )

    def test_create_requires_actor(self):
        with self.assertRaises(AuthenticationRequired):
            services.create_article(None, {"title": "x", "content": "body"})

    def test_anonymous_sees_published_only(self):
        self.assertEqual(list(services.visible_articles(None)), [self.published])

    def test_author_sees_own_drafts(self):
        self.assertCountEqual(services.visible_articles(self.author), [self.published, self.draft])
        self.assertEqual(list(services.visible_articles(self.other)), [self.published])

    def test_other_authors_draft_is_not_found(self):
        with self.assertRaises(NotFoundError):
            services.get_article(self.other, self.draft.pk)
        self.assertEqual(services.get_article(self.author, self.draft.pk), self.draft)

    def test_category_filter(self):
        design = self.categories["design"]
        self.assertEqual(list(services.visible_articles(None, category_id=design.pk)), [self.published])
        self.assertEqual(list(services.visible_articles(None, category_id=self.categories["business"].pk)), [])
        with self.assertRaises(NotFoundError):
            list(services.visible_articles(None, category_id="00000000-0000-0000-0000-000000000000"))

    def test_partial_update_publishes_and_keeps_fields(self):
        article = services.update_article(self.author, self.draft.pk, {"is_published": True}, partial=True)

        self.assertEqual((article.title, article.slug), ("Draft", "draft"))
        self.assertTrue(article.is_published)
        self.assertIsNotNone(article.published_at)

    def test_unpublish_clears_timestamp(self):
        article = services.update_article(self.author, self.published.pk, {"is_published": False}, partial=True)

        article.refresh_from_db()
        self.assertIsNone(article.published_at)
        self.assertEqual(article.status, "draft")

    def test_update_keeps_timestamp_when_state_unchanged(self):
        stamp = self.published.published_at

        article = services.update_article(self.author, self.published.pk, {"title": "Public 2"}, partial=True)

        self.assertEqual(article.published_at, stamp)

    def test_only_author_may_update_or_delete(self):
        with self.assertRaises(OwnershipError):
            services.update_article(self.other, self.published.pk, {"title": "Hijack"}, partial=True)
        with self.assertRaises(OwnershipError):
            services.delete_article(self.other, self.published.pk)

        self.published.refresh_from_db()
        self.assertEqual(self.published.title, "Public")

    def test_delete(self):
        services.delete_article(self.author, self.draft.pk)
        self.assertFalse(Article.objects.filter(pk=self.draft.pk).exists())

    def test_delete_unknown_is_not_found(self):
        with self.assertRaises(NotFoundError):
            services.delete_article(self.author, "00000000-0000-0000-0000-000000000000")


class ArticleApiTests(FakeRedisMixin, TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.author = create_user("author@example.com", name="Grace")
        cls.other = create_user("other@example.com")
        cls.categories = seed_categories()
        cls.draft = Article.objects.create(title="Draft", slug="draft", content="<p>WIP</p>", author=cls.author)

    def setUp(self):
        self.anonymous = APIClient()
        self.author_client = auth_client(self.author)

    def test_create_and_read_back(self):
        response = self.author_client.post(
            "/articles/",
            {
                "title": "Hello World",
                "content": "<p>Hi there</p>",
                "is_published": True,
                "category_id": str(self.categories["tutorials"].pk),
            },
            format="json",
        )
        data = response.json()["data"]

        self.assertEqual(response.status_code, 201)
        self.assertEqual(data["slug"], "hello-world")
        self.assertEqual(data["status"], "published")
        self.assertEqual(data["category"]["slug"], "tutorials")
        self.assertEqual(data["author"]["name"], "Grace")
        self.assertTrue(data["is_author"])

        public = self.anonymous.get(f"/articles/{data['id']}/").json()["data"]
        self.assertFalse(public["is_author"])

    def test_create_requires_authentication(self):
        response = self.anonymous.post("/articles/", {"title": "x", "content": "y"}, format="json")
        self.assertEqual(response.status_code, 401)

    def test_list_hides_drafts_from_anonymous(self):
        response = self.anonymous.get("/articles/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"], [])

    def test_list_omits_content(self):
        rows = self.author_client.get("/articles/").json()["data"]

        self.assertEqual([row["slug"] for row in rows], ["draft"])
        self.assertNotIn("content", rows[0])

    def test_list_with_unknown_category_is_404(self):
        response = self.anonymous.get("/articles/", {"category": "00000000-0000-0000-0000-000000000000"})
        self.assertEqual(response.status_code, 404)

    def test_other_users_draft_is_404(self):
        response = auth_client(self.other).get(f"/articles/{self.draft.pk}/")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["errors"], ["Article not found or not published."])

    def test_non_author_update_is_403(self):
        response = auth_client(self.other).patch(f"/articles/{self.draft.pk}/", {"title": "Mine"}, format="json")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["errors"], ["You can only update your own articles."])

    def test_field_errors_in_envelope(self):
        response = self.author_client.put(f"/articles/{self.draft.pk}/", {"title": ""}, format="json")
        fields = {error["field"] for error in response.json()["errors"]}

        self.assertEqual(response.status_code, 400)
        self.assertEqual(fields, {"title", "slug", "content"})

    def test_delete_returns_204(self):
        response = self.author_client.delete(f"/articles/{self.draft.pk}/")

        self.assertEqual(response.status_code, 204)
        self.assertFalse(Article.objects.filter(pk=self.draft.pk).exists())
