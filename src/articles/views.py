"""Article endpoints.

Reads are open to everyone but scoped by ``visible_articles``; writes are
limited to the article's author by the service layer.
"""

from rest_framework import status
from rest_framework.response import Response

from core.response import BaseViewSet, api_response
from . import services
from .serializers import ArticleListSerializer, ArticleSerializer, ArticleWriteSerializer


class ArticleViewSet(BaseViewSet):
    serializer_class = ArticleSerializer
    permission_classes = []

    def get_queryset(self):
        return services.visible_articles(self.actor)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["actor"] = self.actor
        return context

    def list(self, request):
        articles = services.visible_articles(self.actor, category_id=request.query_params.get("category"))
        return api_response(ArticleListSerializer(articles, many=True, context=self.get_serializer_context()).data)

    def retrieve(self, request, pk=None):
        article = services.get_article(self.actor, pk)
        return api_response(ArticleSerializer(article, context=self.get_serializer_context()).data)

    def create(self, request):
        article = services.create_article(self.actor, self._payload(request))
        return api_response(
            ArticleSerializer(article, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, pk=None, partial=False):
        article = services.update_article(self.actor, pk, self._payload(request, partial), partial=partial)
        return api_response(ArticleSerializer(article, context=self.get_serializer_context()).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    def destroy(self, request, pk=None):
        services.delete_article(self.actor, pk)
        # 204 responses must not include a body.
        return Response(status=status.HTTP_204_NO_CONTENT)

    @staticmethod
    def _payload(request, partial=False) -> dict:
        serializer = ArticleWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        return dict(serializer.validated_data)


__all__ = ["ArticleViewSet"]
