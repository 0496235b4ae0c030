"""Tests for cache purge Celery tasks."""

from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from content.models import ContentItem
from content.purge import PurgeError
from content.tasks import purge_all_content, purge_content, queue_purge
from core.models import Task


@override_settings(SITE_URL="https://example.com", PURGE_KEY="secret123", PURGE_PATH="/purge")
class TestPurgeContentTask(TestCase):
    """Tests for purge_content Celery task."""

    @patch("content.purge.send_purge_request")
    def test_successful_purge(self, mock_send):
        task = Task.objects.create()
        mock_send.return_value = 200

        result = purge_content(task.id, "hello-world")

        assert result is True
        task.refresh_from_db()
        assert task.status == "success"
        assert "Purging cached copy of hello-world" in task.logs
        assert "POST https://example.com/purge/hello-world/ -> HTTP 200" in task.logs

        request = mock_send.call_args[0][0]
        assert request.headers == {"X-Purge-Key": "secret123"}
        assert mock_send.call_args[1]["timeout"] == 10

    @override_settings(PURGE_KEY="")
    @patch("content.purge.send_purge_request")
    def test_skips_when_not_configured(self, mock_send):
        task = Task.objects.create()

        result = purge_content(task.id, "hello-world")

        assert result is False
        task.refresh_from_db()
        assert task.status == "success"
        assert "not configured" in task.logs
        mock_send.assert_not_called()

    @patch("content.purge.send_purge_request")
    def test_handles_purge_error_gracefully(self, mock_send):
        task = Task.objects.create()
        mock_send.side_effect = PurgeError("Purge request to https://example.com/purge/x/ timed out")

        result = purge_content(task.id, "x")

        assert result is False
        task.refresh_from_db()
        assert task.status == "completed_with_errors"
        assert "timed out" in task.logs

    @patch("content.purge.send_purge_request")
    def test_handles_error_status_gracefully(self, mock_send):
        task = Task.objects.create()
        mock_send.side_effect = PurgeError("Purge endpoint returned HTTP 500", status_code=500)

        result = purge_content(task.id, "hello-world")

        assert result is False
        task.refresh_from_db()
        assert task.status == "completed_with_errors"
        assert "Purge request failed" in task.logs

    @override_settings(SITE_URL="example.com")
    @patch("content.purge.send_purge_request")
    def test_handles_invalid_site_url(self, mock_send):
        task = Task.objects.create()

        result = purge_content(task.id, "hello-world")

        assert result is False
        task.refresh_from_db()
        assert task.status == "completed_with_errors"
        assert "Failed to build purge URL" in task.logs
        mock_send.assert_not_called()

    @patch("content.purge.send_purge_request")
    def test_records_audit_trail(self, mock_send):
        task = Task.objects.create()
        mock_send.return_value = 204

        purge_content(task.id, "hello-world")

        events = list(task.audit_trail.values_list("event", flat=True))
        assert events == ["started", "completed"]


@override_settings(SITE_URL="https://example.com", PURGE_KEY="secret123", PURGE_PATH="/purge")
class TestPurgeAllContentTask(TestCase):
    """Tests for purge_all_content Celery task."""

    @patch("content.purge.send_purge_request")
    def test_purges_entire_cache(self, mock_send):
        task = Task.objects.create()
        mock_send.return_value = 200

        result = purge_all_content(task.id)

        assert result is True
        request = mock_send.call_args[0][0]
        assert request.method == "GET"
        assert request.url == "https://example.com/purge"
        task.refresh_from_db()
        assert task.status == "success"
        assert "Purging entire cache" in task.logs

    @patch("content.purge.send_purge_request")
    def test_handles_failure_gracefully(self, mock_send):
        task = Task.objects.create()
        mock_send.side_effect = PurgeError("Connection refused")

        result = purge_all_content(task.id)

        assert result is False
        task.refresh_from_db()
        assert task.status == "completed_with_errors"


class TestQueuePurge(TestCase):
    """Tests for the save/delete handler that queues purges."""

    def _item(self):
        return MagicMock(spec=ContentItem, slug="hello-world")

    @override_settings(SITE_URL="https://example.com", PURGE_KEY="secret123")
    @patch("content.tasks.dispatch_task")
    def test_dispatches_purge_task(self, mock_dispatch):
        mock_dispatch.return_value = "task"

        result = queue_purge(self._item())

        assert result == "task"
        mock_dispatch.assert_called_once_with(
            "content.tasks.purge_content",
            args=["hello-world"],
            initial_logs="Purge queued for hello-world",
        )

    @override_settings(PURGE_KEY="")
    @patch("content.tasks.dispatch_task")
    def test_skips_when_not_configured(self, mock_dispatch):
        assert queue_purge(self._item()) is None
        mock_dispatch.assert_not_called()

    @override_settings(SITE_URL="https://example.com", PURGE_KEY="secret123")
    @patch("content.purge.send_purge_request")
    def test_runs_task_after_commit(self, mock_send):
        mock_send.return_value = 200

        with self.captureOnCommitCallbacks(execute=True):
            task = queue_purge(self._item())

        task.refresh_from_db()
        assert task.status == "success"
        assert task.celery_task_id
        assert task.logs.startswith("Purge queued for hello-world")


@override_settings(SITE_URL="https://example.com", PURGE_KEY="secret123", PURGE_PATH="/purge")
class TestCancelledPurge(TestCase):
    """A purge cancelled before it runs sends nothing."""

    @patch("content.purge.send_purge_request")
    def test_cancelled_task_is_skipped(self, mock_send):
        task = Task.objects.create()
        task.cancel()

        assert purge_content(task.id, "hello-world") is False
        assert purge_all_content(task.id) is False

        mock_send.assert_not_called()
        task.refresh_from_db()
        assert task.status == "cancelled"
