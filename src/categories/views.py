"""Category endpoints backed by the hierarchy manager.

Reads are public; writes need an authenticated actor, which the service
layer checks.
"""

from dataclasses import asdict

from rest_framework import status
from rest_framework.decorators import action

from core.response import BaseViewSet, api_response
from . import services
from .serializers import (
    CategoryChoiceSerializer,
    CategorySerializer,
    CategoryWriteSerializer,
    serialize_tree,
)


class CategoryViewSet(BaseViewSet):
    serializer_class = CategorySerializer
    permission_classes = []

    def get_queryset(self):
        return services.list_categories()

    def list(self, request):
        return api_response(CategorySerializer(services.list_categories(), many=True).data)

    def retrieve(self, request, pk=None):
        return api_response(CategorySerializer(services.get_category(pk)).data)

    def create(self, request):
        payload = self._payload(request)
        category = services.create_category(self.actor, **payload)
        return api_response(
            CategorySerializer(services.get_category(category.pk)).data,
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, pk=None, partial=False):
        payload = self._payload(request, partial=partial)
        if partial:
            current = services.get_category(pk)
            payload.setdefault("name", current.name)
            payload.setdefault("slug", current.slug)
            payload.setdefault("description", current.description)
            payload.setdefault("parent_id", current.parent_id)
        category = services.update_category(self.actor, pk, **payload)
        return api_response(CategorySerializer(services.get_category(category.pk)).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    def destroy(self, request, pk=None):
        summary = services.delete_category(self.actor, pk)
        return api_response(asdict(summary))

    @action(detail=False, methods=["get"])
    def tree(self, request):
        """Nested forest with per-node child and article counts."""
        return api_response(serialize_tree(services.category_tree()))

    @action(detail=False, methods=["get"], url_path="parent-choices")
    def parent_choices(self, request):
        """Valid parents for a category form; ``?exclude=<id>`` when editing."""
        choices = services.parent_choices(request.query_params.get("exclude"))
        return api_response(CategoryChoiceSerializer(choices, many=True).data)

    @staticmethod
    def _payload(request, partial=False) -> dict:
        serializer = CategoryWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        if not partial:
            data.setdefault("name", "")
        return data


__all__ = ["CategoryViewSet"]
