import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class PrioritiesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "priorities"
    verbose_name = "Priorities"

    def ready(self):
        from .signals import collection_replaced

        collection_replaced.connect(_log_collection_replaced, dispatch_uid="priorities.log_replaced")


def _log_collection_replaced(sender, key, **kwargs):
    logger.debug("Collection %s replaced", key)
