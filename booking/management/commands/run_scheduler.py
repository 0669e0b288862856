"""
run_scheduler.py
----------------
Long-running process that fires the reminder check on a fixed cadence.

Usage:
    python manage.py run_scheduler
    python manage.py run_scheduler --interval 15 --run-now
"""

from django.conf import settings
from django.core.management.base import BaseCommand

from booking.services.reminder_scheduler import ReminderScheduler, build_scheduler


class Command(BaseCommand):
    help = "Run the periodic session reminder scheduler (blocks until interrupted)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--interval",
            type=int,
            default=getattr(settings, "REMINDER_INTERVAL_MINUTES", 15),
            help="Minutes between reminder checks.",
        )
        parser.add_argument(
            "--run-now",
            action="store_true",
            help="Run one check immediately before the first scheduled tick.",
        )

    def handle(self, *args, **options):
        reminders = ReminderScheduler()
        scheduler = build_scheduler(interval_minutes=options["interval"], reminders=reminders)

        if options["run_now"]:
            sent = reminders.scan_and_dispatch()
            self.stdout.write(f"Initial check sent {sent} reminder(s).")

        self.stdout.write(
            self.style.SUCCESS(f"Reminder scheduler running - checking every {options['interval']} minutes")
        )
        try:
            scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            self.stdout.write("Reminder scheduler stopped.")
