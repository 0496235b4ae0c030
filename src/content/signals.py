"""Content change events.

Handlers subscribe with ``on_content_saved`` / ``on_content_deleted`` and are
called with the affected ``ContentItem``. Handlers run through
``send_robust``: an exception in a handler is logged and never reaches the
code that saved or deleted the item.
"""

import logging
from collections.abc import Callable

from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from .models import ContentItem

logger = logging.getLogger(__name__)

# Sent with item=<ContentItem>, created=<bool>
content_saved = Signal()
# Sent with item=<ContentItem>
content_deleted = Signal()

ContentHandler = Callable[[ContentItem], None]


def handler_uid(handler: ContentHandler) -> str:
    """dispatch_uid for a handler, used to connect and disconnect it.

    Handlers are identified by object identity. A bound method is identified
    by its instance and function, since each attribute access builds a new
    method object.
    """
    instance = getattr(handler, "__self__", None)
    func = getattr(handler, "__func__", None)
    if instance is not None and func is not None:
        return f"content-handler:{id(instance)}:{id(func)}"
    return f"content-handler:{id(handler)}"


def _connect(signal: Signal, handler: ContentHandler) -> ContentHandler:
    def _receive(sender, item, **kwargs):
        handler(item)

    _receive.handler = handler
    # Strong reference: the wrapper closure has no other owner
    signal.connect(_receive, weak=False, dispatch_uid=handler_uid(handler))
    return handler


def on_content_saved(handler: ContentHandler) -> ContentHandler:
    """Register ``handler(item)`` to run whenever a content item is created or updated.

    Can be used as a decorator. Registering the same handler twice is a no-op.
    """
    return _connect(content_saved, handler)


def on_content_deleted(handler: ContentHandler) -> ContentHandler:
    """Register ``handler(item)`` to run whenever a content item is deleted."""
    return _connect(content_deleted, handler)


def _report_failures(event: str, item: ContentItem, responses) -> None:
    for receiver_func, result in responses:
        if isinstance(result, Exception):
            logger.error(
                "Content %s handler %s failed for %r: %s",
                event,
                getattr(getattr(receiver_func, "handler", receiver_func), "__qualname__", receiver_func),
                item.slug,
                result,
                exc_info=result,
            )


@receiver(post_save, sender=ContentItem, dispatch_uid="content-post-save")
def _content_post_save(sender, instance, created, raw=False, **kwargs):
    # Fixture loading saves raw rows; nothing is published yet
    if raw:
        return
    responses = content_saved.send_robust(sender=ContentItem, item=instance, created=created)
    _report_failures("saved", instance, responses)


@receiver(post_delete, sender=ContentItem, dispatch_uid="content-post-delete")
def _content_post_delete(sender, instance, **kwargs):
    responses = content_deleted.send_robust(sender=ContentItem, item=instance)
    _report_failures("deleted", instance, responses)
