"""Content Django app configuration."""

from django.apps import AppConfig


class ContentConfig(AppConfig):
    """Content app configuration."""

    name = "content"

    def ready(self):
        """Connect model signals and subscribe the cache purge to content events."""
        from . import signals
        from .tasks import queue_purge

        signals.on_content_saved(queue_purge)
        signals.on_content_deleted(queue_purge)
