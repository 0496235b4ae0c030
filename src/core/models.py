"""Core models for tracking background purge work."""

import logging
import secrets

import randomname
from celery import current_app
from django.db import models, transaction

logger = logging.getLogger(__name__)

TASK_ID_LENGTH = 12
TASK_STATUS_MAX_LENGTH = 25

FINISHED_EVENTS = ("completed", "completed_with_errors", "failed")
CANCELLABLE_STATUSES = ("queued", "in_progress")


def generate_short_uuid():
    """Generate a 12-character hexadecimal ID."""
    return secrets.token_hex(6)


def generate_task_name():
    """Generate a random memorable name for a task."""
    return randomname.get_name()


class Task(models.Model):
    """One queued purge, mirroring the lifecycle of its Celery job.

    Status moves queued -> in_progress -> success / completed_with_errors /
    failed, or to cancelled from either of the first two. A failed purge
    request is a non-fatal error: the task finishes ``completed_with_errors``.
    """

    STATUS_CHOICES = [
        ("queued", "Queued"),
        ("in_progress", "In Progress"),
        ("success", "Success"),
        ("completed_with_errors", "Completed with Errors"),
        ("failed", "Failed"),
        ("cancelled", "Cancelled"),
    ]

    id = models.CharField(max_length=TASK_ID_LENGTH, primary_key=True, default=generate_short_uuid, editable=False)
    name = models.CharField(max_length=255, default=generate_task_name, editable=False)
    status = models.CharField(max_length=TASK_STATUS_MAX_LENGTH, choices=STATUS_CHOICES, default="queued", db_index=True)
    logs = models.TextField(blank=True, default="")

    # Which Celery job runs this purge, and with what
    celery_task_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    task_type = models.CharField(max_length=255, null=True, blank=True)
    task_args = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.get_status_display()})"

    def append_log(self, text):
        """Add a line to the task log in memory; callers save."""
        if text:
            self.logs = f"{self.logs}\n{text}" if self.logs else text

    def _transition(self, status, event, logs=""):
        self.status = status
        self.append_log(logs)
        self.save(update_fields=["status", "logs"])
        TaskAuditTrail.objects.create(task=self, event=event)

    def start(self):
        self._transition("in_progress", "started")

    def complete(self, success=True, has_errors=False, logs=""):
        """Mark task as finished.

        Args:
            success: Whether the task ran to completion
            has_errors: Whether there were non-fatal errors (e.g. a failed purge request)
            logs: Lines to append to the task log
        """
        if not success:
            self._transition("failed", "failed", logs)
        elif has_errors:
            self._transition("completed_with_errors", "completed_with_errors", logs)
        else:
            self._transition("success", "completed", logs)

    @property
    def can_cancel(self):
        return self.status in CANCELLABLE_STATUSES

    def cancel(self):
        """Cancel a queued or running purge and revoke its Celery job.

        Returns:
            False if the task had already finished, True otherwise
        """
        if not self.can_cancel:
            return False

        if self.celery_task_id:
            current_app.control.revoke(self.celery_task_id, terminate=True, signal="SIGTERM")

        self._transition("cancelled", "cancelled", "Task cancelled")
        return True

    def _event_time(self, *events):
        entry = self.audit_trail.filter(event__in=events).first()
        return entry.created_at if entry else None

    @property
    def started_at(self):
        return self._event_time("started")

    @property
    def finished_at(self):
        """When the task completed, failed, or was cancelled."""
        return self._event_time(*FINISHED_EVENTS, "cancelled")


class TaskAuditTrail(models.Model):
    """Immutable audit log for task events."""

    EVENT_CHOICES = [
        ("created", "Created"),
        ("started", "Started"),
        ("completed", "Completed"),
        ("completed_with_errors", "Completed with Errors"),
        ("failed", "Failed"),
        ("cancelled", "Cancelled"),
    ]

    id = models.CharField(max_length=TASK_ID_LENGTH, primary_key=True, default=generate_short_uuid, editable=False)
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="audit_trail")
    event = models.CharField(max_length=TASK_STATUS_MAX_LENGTH, choices=EVENT_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.task.name} - {self.get_event_display()} at {self.created_at}"


def _resolve_celery_task(celery_task_name):
    """Look up a registered Celery task, importing its module if needed."""
    celery_task = current_app.tasks.get(celery_task_name)
    if celery_task:
        return celery_task

    module_name, task_name = celery_task_name.rsplit(".", 1)
    module = __import__(module_name, fromlist=[task_name])
    return getattr(module, task_name)


def dispatch_task(celery_task_name, args=None, kwargs=None, initial_logs=""):
    """Create a tracked Task and queue its Celery job once the transaction commits.

    The Celery task receives ``task.id`` as its first positional argument.
    Dispatch failures are recorded on the Task rather than raised, so callers
    inside a save never fail because the broker is unavailable.

    Example:
        task = dispatch_task(
            "content.tasks.purge_content",
            args=["hello-world"],
            initial_logs="Purge queued for hello-world",
        )
    """
    args = args or []
    kwargs = kwargs or {}

    with transaction.atomic():
        task = Task.objects.create(
            task_type=celery_task_name,
            task_args={"args": args, "kwargs": kwargs},
            logs=initial_logs,
        )
        TaskAuditTrail.objects.create(task=task, event="created")

    # Only queue once the outer transaction commits, so a rolled-back save never purges
    def _dispatch():
        try:
            result = _resolve_celery_task(celery_task_name).delay(task.id, *args, **kwargs)
        except Exception as e:
            logger.error("Failed to dispatch task %s (%s): %s", task.id, celery_task_name, e, exc_info=True)
            task.refresh_from_db(fields=["status", "logs"])
            task.complete(success=False, logs=f"Failed to dispatch task: {e}")
            return

        task.celery_task_id = result.id
        task.save(update_fields=["celery_task_id"])

    transaction.on_commit(_dispatch)
    return task
