"""App configuration for the category hierarchy."""

from django.apps import AppConfig


class CategoriesConfig(AppConfig):
    """Categories form a forest that articles are filed under."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "categories"
