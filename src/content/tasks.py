"""Celery tasks for cache purging."""

import logging

from celery import shared_task

from core.models import Task, dispatch_task

from . import purge

logger = logging.getLogger(__name__)


def queue_purge(item):
    """Queue a purge of one content item; registered for save and delete events.

    Returns:
        The tracked Task, or None when purging is not configured
    """
    if not purge.should_purge():
        logger.debug("Cache purge not configured, not queueing purge for %r", item.slug)
        return None

    return dispatch_task(
        "content.tasks.purge_content",
        args=[item.slug],
        initial_logs=f"Purge queued for {item.slug}",
    )


def _run_purge(task: Task, description: str, build_request) -> bool:
    """Build and send one purge request, recording the outcome on ``task``."""
    # Cancelled before a worker picked it up
    if task.status == "cancelled":
        return False

    task.start()
    logs = [f"Purging {description}"]

    if not purge.should_purge():
        logs.append("Cache purge not configured (SITE_URL / PURGE_KEY), skipping")
        task.complete(success=True, logs="\n".join(logs))
        return False

    config = purge.get_purge_config()
    try:
        request = build_request(config)
    except ValueError as e:
        logger.warning("Failed to build purge URL for %s: %s", description, e)
        logs.append(f"Failed to build purge URL: {e}")
        task.complete(success=True, has_errors=True, logs="\n".join(logs))
        return False

    try:
        status_code = purge.send_purge_request(request, timeout=config.timeout)
    except purge.PurgeError as e:
        logger.warning("Cache purge of %s failed: %s", description, e)
        logs.append(f"Purge request failed: {e}")
        task.complete(success=True, has_errors=True, logs="\n".join(logs))
        return False

    logs.append(f"{request.method} {request.url} -> HTTP {status_code}")
    task.complete(success=True, logs="\n".join(logs))
    return True


@shared_task
def purge_content(task_id: str, identifier: str) -> bool:
    """Purge the cached copy of one content item. Never raises for purge failures."""
    task = Task.objects.get(id=task_id)
    return _run_purge(
        task,
        f"cached copy of {identifier}",
        lambda config: purge.build_purge_request(identifier, config),
    )


@shared_task
def purge_all_content(task_id: str) -> bool:
    """Ask the cache layer to drop every cached page."""
    task = Task.objects.get(id=task_id)
    return _run_purge(task, "entire cache", purge.build_purge_all_request)
