"""Purge cached content on demand."""

from django.core.management.base import BaseCommand, CommandError

from content import purge
from core.models import Task, dispatch_task


class Command(BaseCommand):
    help = "Ask the cache layer to purge the given content slugs, or everything with --all"

    def add_arguments(self, parser):
        parser.add_argument("slugs", nargs="*", help="Content slugs to purge")
        parser.add_argument(
            "--all",
            action="store_true",
            help="Purge the entire cache",
        )
        parser.add_argument(
            "--queue",
            action="store_true",
            help="Queue tracked background tasks instead of purging synchronously",
        )
        parser.add_argument(
            "--cancel",
            metavar="TASK_ID",
            help="Cancel a queued purge task",
        )

    def handle(self, *args, **options):
        if options["cancel"]:
            self._cancel(options["cancel"])
            return

        slugs = options["slugs"]
        if not slugs and not options["all"]:
            raise CommandError("Give one or more slugs, or use --all or --cancel")

        if not purge.should_purge():
            self.stdout.write(self.style.WARNING("Cache purge not configured (set SITE_URL and PURGE_KEY)"))
            return

        if options["queue"]:
            if options["all"]:
                task = dispatch_task("content.tasks.purge_all_content", initial_logs="Manual purge of entire cache")
                self.stdout.write(f"Queued task {task.id} to purge entire cache")
            for slug in slugs:
                task = dispatch_task("content.tasks.purge_content", args=[slug], initial_logs=f"Manual purge of {slug}")
                self.stdout.write(f"Queued task {task.id} to purge {slug}")
            return

        config = purge.get_purge_config()
        if options["all"]:
            self._purge("entire cache", lambda: purge.build_purge_all_request(config), config)
        for slug in slugs:
            self._purge(slug, lambda slug=slug: purge.build_purge_request(slug, config), config)

    def _cancel(self, task_id):
        try:
            task = Task.objects.get(id=task_id)
        except Task.DoesNotExist:
            raise CommandError(f"No task with id {task_id}") from None

        if task.cancel():
            self.stdout.write(self.style.SUCCESS(f"Cancelled task {task.id} ({task.name})"))
        else:
            self.stdout.write(self.style.WARNING(f"Task {task.id} already {task.get_status_display().lower()}"))

    def _purge(self, label, build_request, config):
        self.stdout.write(f"Purging {label}...")
        try:
            status_code = purge.send_purge_request(build_request(), timeout=config.timeout)
        except (purge.PurgeError, ValueError) as e:
            self.stdout.write(self.style.WARNING(f"Failed to purge {label}: {e}"))
            return
        self.stdout.write(self.style.SUCCESS(f"Purged {label} (HTTP {status_code})"))
