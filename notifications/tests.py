from django.core import mail
from django.test import TestCase

from booking.models import ClientProfile
from booking.services.notification_service import (
    TEMPLATE_CUSTOM,
    NotificationService,
)
from notifications.models import Notification


class NotificationTests(TestCase):

    def setUp(self):
        self.client_profile = ClientProfile.objects.create(name="Jordan River", email="jordan@example.com")
        self.service = NotificationService()

    def test_sent_message_is_recorded(self):
        ok = self.service.notify(
            "jordan@example.com",
            TEMPLATE_CUSTOM,
            {"client_name": "Jordan", "subject": "Schedule change", "message": "See you Tuesday."},
            client=self.client_profile,
        )

        self.assertTrue(ok)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, "Schedule change")
        self.assertIn("See you Tuesday.", mail.outbox[0].body)

        note = Notification.objects.get()
        self.assertTrue(note.sent)
        self.assertEqual(note.user, self.client_profile)
        self.assertEqual(note.kind, TEMPLATE_CUSTOM)

    def test_unknown_template_is_not_sent(self):
        self.assertFalse(self.service.notify("jordan@example.com", "birthday", {}))
        self.assertEqual(len(mail.outbox), 0)
        self.assertFalse(Notification.objects.exists())

    def test_missing_recipient_is_not_sent(self):
        self.assertFalse(self.service.notify("", TEMPLATE_CUSTOM, {"message": "hi"}))
        self.assertEqual(len(mail.outbox), 0)

    def test_bulk_message_reports_per_client(self):
        other = ClientProfile.objects.create(name="Casey Stone", email="")
        results = self.service.send_bulk_custom_message([self.client_profile, other], "Closed Friday", "Gym closed.")

        self.assertEqual(
            results,
            [
                {"client_id": self.client_profile.pk, "email": "jordan@example.com", "success": True},
                {"client_id": other.pk, "email": "", "success": False},
            ],
        )
        self.assertEqual(len(mail.outbox), 1)
