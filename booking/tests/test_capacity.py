from django.test import TestCase

from booking.exceptions import CapacityExceeded, InvalidBookingData, SessionInactive
from booking.models import Booking, TrainingSession
from booking.services.booking_manager import BookingManager
from booking.services.capacity_ledger import CapacityLedger

from .helpers import future_start, make_admin, make_client, make_session


class CapacityLedgerTests(TestCase):
    def setUp(self):
        self.trainer = make_admin()
        self.client_a = make_client("Jordan River")
        self.client_b = make_client("Casey Stone")
        self.session = make_session(self.trainer, capacity=4)
        self.ledger = CapacityLedger()
        self.manager = BookingManager()

    def test_occupied_counts_only_confirmed_group_sizes(self):
        self.manager.create_booking(self.session.pk, self.client_a.pk, 2)
        other = self.manager.create_booking(self.session.pk, self.client_b.pk, 1)
        self.assertEqual(self.ledger.occupied(self.session.pk), 3)

        Booking.objects.filter(pk=other.pk).update(status=Booking.STATUS_CANCELLED)
        self.assertEqual(self.ledger.occupied(self.session.pk), 2)

    def test_can_book_within_capacity(self):
        self.assertTrue(self.ledger.can_book(self.session, 3, 1))

    def test_can_book_rejects_overflow(self):
        with self.assertRaises(CapacityExceeded):
            self.ledger.can_book(self.session, 3, 2)

    def test_can_book_rejects_inactive_session(self):
        self.session.is_active = False
        with self.assertRaises(SessionInactive):
            self.ledger.can_book(self.session, 0, 1)

    def test_group_size_bounds(self):
        for bad in [0, 5, -1, "two", None]:
            with self.subTest(size=bad):
                with self.assertRaises(InvalidBookingData):
                    self.ledger.validate_group_size(bad)
        self.assertEqual(self.ledger.validate_group_size("3"), 3)

    def test_last_seats_example(self):
        """Capacity 4 with 3 taken: 2 more fails, 1 more fills it, then nothing fits."""
        self.manager.create_booking(self.session.pk, self.client_a.pk, 3)

        with self.assertRaises(CapacityExceeded):
            self.manager.create_booking(self.session.pk, self.client_b.pk, 2)

        self.manager.create_booking(self.session.pk, self.client_b.pk, 1)
        self.session.refresh_from_db()
        self.assertEqual(self.session.occupied_seats, 4)
        self.assertEqual(self.ledger.occupied(self.session.pk), 4)

        for size in (1, 2, 3, 4):
            with self.subTest(size=size):
                with self.assertRaises(CapacityExceeded):
                    self.manager.create_booking(self.session.pk, self.client_a.pk, size)
        self.assertEqual(Booking.objects.filter(session=self.session).count(), 2)

    def test_stale_reader_cannot_take_the_last_seat(self):
        """Two requests that both read one free seat: only the first UPDATE wins."""
        single = make_session(self.trainer, starts_at=future_start(hour=15), capacity=1)
        first_view = TrainingSession.objects.get(pk=single.pk)
        second_view = TrainingSession.objects.get(pk=single.pk)

        self.ledger.reserve_seats(first_view, 1)
        with self.assertRaises(CapacityExceeded):
            self.ledger.reserve_seats(second_view, 1)

        single.refresh_from_db()
        self.assertEqual(single.occupied_seats, 1)

    def test_reserve_refuses_session_deactivated_meanwhile(self):
        stale = TrainingSession.objects.get(pk=self.session.pk)
        TrainingSession.objects.filter(pk=self.session.pk).update(is_active=False)
        with self.assertRaises(SessionInactive):
            self.ledger.reserve_seats(stale, 1)

    def test_failed_booking_leaves_no_partial_state(self):
        self.manager.create_booking(self.session.pk, self.client_a.pk, 4)
        with self.assertRaises(CapacityExceeded):
            self.manager.create_booking(self.session.pk, self.client_b.pk, 1)
        self.session.refresh_from_db()
        self.assertEqual(self.session.occupied_seats, 4)
        self.assertFalse(Booking.objects.filter(client=self.client_b).exists())

    def test_release_and_reconcile(self):
        booking = self.manager.create_booking(self.session.pk, self.client_a.pk, 2)
        Booking.objects.filter(pk=booking.pk).update(status=Booking.STATUS_CANCELLED)
        self.ledger.release_seats(self.session, 2)
        self.assertEqual(self.session.occupied_seats, 0)

        # Counter drifted below the release: falls back to recomputing.
        TrainingSession.objects.filter(pk=self.session.pk).update(occupied_seats=1)
        self.ledger.release_seats(self.session, 3)
        self.assertEqual(self.session.occupied_seats, 0)
