# booking/management/commands/test_email.py
from django.core.management.base import BaseCommand, CommandError

from booking.services.notification_service import TEMPLATE_CUSTOM, NotificationService


class Command(BaseCommand):
    help = "Send a one-off test email using current EMAIL_* settings."

    def add_arguments(self, parser):
        parser.add_argument("--to", required=True, help="Destination email address")
        parser.add_argument("--subject", default="Test Email - Personal Trainer Booking")
        parser.add_argument("--body", default="This is a test email from the booking system.")

    def handle(self, *args, **opts):
        to_addr = opts["to"]
        ok = NotificationService().notify(
            to_addr,
            TEMPLATE_CUSTOM,
            {"subject": opts["subject"], "message": opts["body"]},
        )
        if not ok:
            raise CommandError(f"Could not send test email to {to_addr} (see log).")
        self.stdout.write(self.style.SUCCESS(f"Sent test email to {to_addr}"))
