"""
send_reminders.py
-----------------
Django management command to run the 2-hour reminder check once, now.

Usage:
    python manage.py send_reminders
    python manage.py send_reminders --at 2025-06-01T08:00:00+00:00

Behavior:
- Runs the same cycle as the periodic scheduler (run_scheduler).
- Bookings that already received a reminder are skipped, so this is safe to
  run while the scheduler is also running.
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from booking.services.reminder_scheduler import send_reminders_now


class Command(BaseCommand):
    help = "Send reminders for sessions starting in about 2 hours."

    def add_arguments(self, parser):
        parser.add_argument(
            "--at",
            default=None,
            help="Pretend the current time is this ISO datetime (default: now).",
        )

    def handle(self, *args, **options):
        now = None
        if options["at"]:
            now = parse_datetime(options["at"])
            if now is None:
                raise CommandError("--at must be an ISO datetime, e.g. 2025-06-01T08:00:00+00:00")
            if timezone.is_naive(now):
                now = timezone.make_aware(now, timezone.get_current_timezone())

        count = send_reminders_now(now=now)
        self.stdout.write(self.style.SUCCESS(f"Sent {count} reminder(s)."))
