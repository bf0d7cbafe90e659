"""Serializers for article reads and article form submissions."""

from rest_framework import serializers

from .models import Article


class ArticleAuthorSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(source="display_name", read_only=True)
    email = serializers.EmailField(read_only=True)


class ArticleCategorySerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    slug = serializers.CharField(read_only=True)


class ArticleSerializer(serializers.ModelSerializer):
    """Article payload; ``is_author`` is computed for the requesting actor."""

    author = ArticleAuthorSerializer(read_only=True)
    category = ArticleCategorySerializer(read_only=True, allow_null=True)
    category_id = serializers.UUIDField(read_only=True, allow_null=True)
    status = serializers.CharField(read_only=True)
    is_author = serializers.SerializerMethodField()

    class Meta:
        model = Article
        fields = [
            "id",
            "title",
            "slug",
            "excerpt",
            "content",
            "featured_image",
            "is_published",
            "published_at",
            "status",
            "category_id",
            "category",
            "author",
            "is_author",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_is_author(self, obj) -> bool:
        actor = self.context.get("actor")
        return actor is not None and obj.author_id == actor.pk


class ArticleListSerializer(ArticleSerializer):
    """List rows leave out the full HTML body."""

    class Meta(ArticleSerializer.Meta):
        fields = [name for name in ArticleSerializer.Meta.fields if name != "content"]
        read_only_fields = fields


class ArticleWriteSerializer(serializers.Serializer):
    """Shape of an article form submission.

    Type checks only; required fields, slug rules, ownership, and the publish
    timestamp are handled in ``articles.services``.
    """

    title = serializers.CharField(required=False, allow_blank=True)
    slug = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    excerpt = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    content = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    featured_image = serializers.URLField(required=False, allow_blank=True, allow_null=True, max_length=500)
    is_published = serializers.BooleanField(required=False)
    category_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)


__all__ = ["ArticleSerializer", "ArticleListSerializer", "ArticleWriteSerializer"]
