"""
scheduler/management/commands/run_scheduler.py

Django management command that starts the APScheduler background scheduler
with all TalentFlow pipeline jobs.

Usage:
    python manage.py run_scheduler

The command blocks until interrupted (Ctrl+C / SIGTERM).  In production,
run it as a long-lived process alongside the web server, e.g.:

    # Procfile (Heroku-style) or systemd unit
    web:       gunicorn talentflow.wsgi --bind 0.0.0.0:8000
    scheduler: python manage.py run_scheduler

Jobs are persisted in the database via DjangoJobStore, which means:
  - Job execution history is available in Django admin.
  - Missed runs (misfire_grace_time) are tracked.
  - Restarting the process picks up existing job definitions automatically.
"""

import logging
import time
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from django.conf import settings
from django.core.management.base import BaseCommand
from django_apscheduler.jobstores import DjangoJobStore

from scheduler.jobs import retry_pending_effects, score_unscored_applications, send_interview_reminders

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Start the APScheduler background scheduler. "
        "Runs all pipeline jobs (effect retries, resume scoring, interview reminders). "
        "Blocks until interrupted."
    )

    def handle(self, *args, **options):
        tz = ZoneInfo(settings.APSCHEDULER_TIMEZONE)

        scheduler = BackgroundScheduler(timezone=tz)
        scheduler.add_jobstore(DjangoJobStore(), "default")

        # ── Job registrations ──────────────────────────────────────────────────
        # replace_existing=True  — update the definition on each restart
        # max_instances=1        — prevent concurrent runs of the same job
        # coalesce=True          — if multiple runs were missed, execute once
        # misfire_grace_time     — seconds after which a missed run is discarded

        scheduler.add_job(
            retry_pending_effects,
            trigger=IntervalTrigger(minutes=5, timezone=tz),
            id="retry_pending_effects",
            name="Retry Undelivered Notifications and Tasks",
            jobstore="default",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )

        scheduler.add_job(
            score_unscored_applications,
            trigger=IntervalTrigger(minutes=30, timezone=tz),
            id="score_unscored_applications",
            name="Score Unscored Applications (Claude)",
            jobstore="default",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )

        scheduler.add_job(
            send_interview_reminders,
            trigger=IntervalTrigger(hours=1, timezone=tz),
            id="send_interview_reminders",
            name="Send Interview Reminders",
            jobstore="default",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=600,
        )

        # ── Start ──────────────────────────────────────────────────────────────
        self.stdout.write(self.style.SUCCESS(
            f"Starting scheduler (timezone={settings.APSCHEDULER_TIMEZONE})"
        ))

        for job in scheduler.get_jobs():
            self.stdout.write(
                f"  • {job.id:<30} next run: {job.next_run_time}"
            )

        scheduler.start()
        logger.info("Scheduler started with %s job(s)", len(scheduler.get_jobs()))
        self.stdout.write(self.style.SUCCESS(
            "Scheduler running. Press Ctrl+C to stop."
        ))

        try:
            # Keep the main thread alive while the scheduler runs in the background.
            while True:
                time.sleep(5)
        except (KeyboardInterrupt, SystemExit):
            self.stdout.write(self.style.WARNING("Shutting down scheduler…"))
            scheduler.shutdown(wait=True)
            self.stdout.write(self.style.SUCCESS("Scheduler stopped."))
