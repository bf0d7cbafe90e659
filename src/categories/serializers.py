"""Serializers for category reads and category form submissions."""

from dataclasses import asdict

from rest_framework import serializers

from .models import Category


class CategorySerializer(serializers.ModelSerializer):
    """Flat category row with the counts the management view shows as badges."""

    parent_id = serializers.UUIDField(read_only=True, allow_null=True)
    parent_name = serializers.SerializerMethodField()
    children_count = serializers.SerializerMethodField()
    article_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "parent_id",
            "parent_name",
            "children_count",
            "article_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_parent_name(self, obj) -> str | None:
        return obj.parent.name if obj.parent_id and obj.parent else None

    def get_children_count(self, obj) -> int:
        return getattr(obj, "children_count", 0)

    def get_article_count(self, obj) -> int:
        return getattr(obj, "article_count", 0)


class CategoryChoiceSerializer(serializers.ModelSerializer):
    """Minimal payload for the parent dropdown."""

    class Meta:
        model = Category
        fields = ["id", "name", "slug", "parent_id"]
        read_only_fields = fields


class CategoryWriteSerializer(serializers.Serializer):
    """Shape of a category form submission.

    Only types are checked here; required fields, slug rules, and the
    hierarchy rules are enforced by ``categories.services`` so every
    violation is reported against its field the same way.
    """

    name = serializers.CharField(required=False, allow_blank=True, trim_whitespace=True)
    slug = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    parent_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)


def serialize_tree(nodes) -> list[dict]:
    return [asdict(node) for node in nodes]


__all__ = [
    "CategorySerializer",
    "CategoryChoiceSerializer",
    "CategoryWriteSerializer",
    "serialize_tree",
]
