from datetime import timedelta

from django.core import mail
from django.test import TestCase
from django.utils import timezone

from booking.exceptions import (
    AlreadyCancelled,
    BookingNotFound,
    CancellationWindowClosed,
    NotAuthorized,
)
from booking.models import Booking
from booking.services.booking_manager import BookingManager
from booking.services.cancellation_policy import ROLE_ADMIN, ROLE_CLIENT, CancellationPolicy, role_for

from .helpers import make_admin, make_client, make_session


class CancellationPolicyTests(TestCase):
    def setUp(self):
        self.trainer = make_admin()
        self.client_profile = make_client("Jordan River")
        self.session = make_session(self.trainer)
        self.manager = BookingManager()
        self.booking = self.manager.create_booking(self.session.pk, self.client_profile.pk, 2)
        self.owner_id = self.client_profile.user_id

    def test_deadline_is_exactly_24h_before_start(self):
        self.assertEqual(self.booking.cancellation_deadline, self.session.starts_at - timedelta(hours=24))
        self.assertTrue(self.booking.can_cancel)

    def test_deadline_is_fixed_when_session_moves(self):
        original = self.booking.cancellation_deadline
        self.session.time = "16:45"
        self.session.save()
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.cancellation_deadline, original)
        self.assertNotEqual(self.session.starts_at - timedelta(hours=24), original)

    def test_booking_inside_24h_is_flagged_as_not_cancellable(self):
        soon = make_session(self.trainer, starts_at=timezone.now() + timedelta(hours=5))
        booking = self.manager.create_booking(soon.pk, self.client_profile.pk, 1)
        self.assertFalse(booking.can_cancel)

    def test_client_can_cancel_one_second_before_deadline(self):
        now = self.booking.cancellation_deadline - timedelta(seconds=1)
        self.manager.cancel_booking(self.booking.pk, self.owner_id, ROLE_CLIENT, now=now)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.STATUS_CANCELLED)
        self.assertEqual(self.booking.cancellation_time, now)

    def test_client_cannot_cancel_one_second_after_deadline(self):
        now = self.booking.cancellation_deadline + timedelta(seconds=1)
        with self.assertRaises(CancellationWindowClosed):
            self.manager.cancel_booking(self.booking.pk, self.owner_id, ROLE_CLIENT, now=now)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.STATUS_CONFIRMED)

    def test_client_cannot_cancel_exactly_at_deadline(self):
        with self.assertRaises(CancellationWindowClosed):
            CancellationPolicy().can_cancel(self.booking, ROLE_CLIENT, now=self.booking.cancellation_deadline)

    def test_admin_can_cancel_any_time(self):
        admin = make_admin("boss")
        now = self.session.starts_at - timedelta(minutes=5)
        self.manager.cancel_booking(self.booking.pk, admin.pk, ROLE_ADMIN, now=now)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.STATUS_CANCELLED)

    def test_other_client_is_not_authorized(self):
        stranger = make_client("Casey Stone")
        with self.assertRaises(NotAuthorized):
            self.manager.cancel_booking(self.booking.pk, stranger.user_id, ROLE_CLIENT)

    def test_missing_booking(self):
        with self.assertRaises(BookingNotFound):
            self.manager.cancel_booking(999999, self.owner_id, ROLE_CLIENT)

    def test_cancel_twice(self):
        self.manager.cancel_booking(self.booking.pk, self.owner_id, ROLE_CLIENT)
        with self.assertRaises(AlreadyCancelled):
            self.manager.cancel_booking(self.booking.pk, self.owner_id, ROLE_CLIENT)

    def test_cancel_releases_seats_and_keeps_row(self):
        self.manager.cancel_booking(self.booking.pk, self.owner_id, ROLE_CLIENT)
        self.session.refresh_from_db()
        self.assertEqual(self.session.occupied_seats, 0)
        self.assertTrue(Booking.objects.filter(pk=self.booking.pk).exists())
        # Freed seats are bookable again
        again = self.manager.create_booking(self.session.pk, self.client_profile.pk, 4)
        self.assertEqual(again.status, Booking.STATUS_CONFIRMED)

    def test_cancel_sends_client_email_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.manager.cancel_booking(self.booking.pk, self.owner_id, ROLE_CLIENT)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.client_profile.email])
        self.assertIn("Cancelled", mail.outbox[0].subject)

    def test_role_for(self):
        self.assertEqual(role_for(self.trainer), ROLE_ADMIN)
        self.assertEqual(role_for(self.client_profile.user), ROLE_CLIENT)
        self.assertEqual(role_for(None), ROLE_CLIENT)
