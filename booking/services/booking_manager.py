"""
booking_manager.py
------------------
Coordinates session and booking lifecycle.

- create_session(): admin creates a slot; refuses a second active session at
  the same date+time.
- create_booking(): capacity check + seat reservation + booking insert +
  package update in one transaction; confirmation emails after commit.
- cancel_booking(): ownership + 24h policy, package reversal, seat release,
  status -> CANCELLED (row kept); cancellation email after commit.
- delete_session(): notify every confirmed client, then delete the session
  and its bookings.

Notes:
- Notification failures are logged and never roll back a committed change.
- The actor is always passed in; nothing here reads a global "current user".
"""

import logging
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from ..exceptions import (
    AlreadyCancelled,
    BookingNotFound,
    ClientNotFound,
    DuplicateSession,
    InvalidBookingData,
    SessionNotFound,
)
from ..models import MAX_GROUP_SIZE, Booking, ClientProfile, TrainingSession
from . import clock, pricing
from .cancellation_policy import CancellationPolicy
from .capacity_ledger import CapacityLedger
from .notification_service import NotificationService
from .package_tracker import PackageTracker

log = logging.getLogger(__name__)


def _run_isolated(label, fn, *args):
    try:
        return fn(*args)
    except Exception:
        log.exception("Error sending %s", label)
        return None


def dispatch_after_commit(label, fn, *args):
    """
    Run a notification once the current transaction commits.
    Nothing is sent if the transaction rolls back.
    """
    transaction.on_commit(lambda: _run_isolated(label, fn, *args))


class BookingManager:
    def __init__(self, notifier=None):
        self.ledger = CapacityLedger()
        self.policy = CancellationPolicy()
        self.packages = PackageTracker()
        self.notifier = notifier or NotificationService()

    # -------------------- Sessions --------------------
    @transaction.atomic
    def create_session(self, *, created_by, trainer, date, time, exercise_type, max_capacity, description=""):
        """
        Create a training session with configured pricing.

        Raises:
            InvalidTimeFormat: bad date or "HH:MM" string
            InvalidBookingData: bad capacity, exercise type or trainer
            DuplicateSession: an active session already starts at that instant
        """
        starts_at = clock.combine(date, time)

        try:
            capacity = int(max_capacity)
        except (TypeError, ValueError):
            raise InvalidBookingData("Max capacity must be a whole number.")
        if not 1 <= capacity <= MAX_GROUP_SIZE:
            raise InvalidBookingData(f"Max capacity must be between 1 and {MAX_GROUP_SIZE}.")

        valid_types = {value for value, _label in TrainingSession.EXERCISE_CHOICES}
        if exercise_type not in valid_types:
            raise InvalidBookingData(f"Unknown exercise type '{exercise_type}'.")

        if trainer is None or not trainer.is_staff:
            raise InvalidBookingData("Trainer must be an admin user.")

        if TrainingSession.objects.filter(starts_at=starts_at, is_active=True).exists():
            raise DuplicateSession()

        try:
            # Savepoint, so a lost race leaves the outer transaction usable
            with transaction.atomic():
                session = TrainingSession.objects.create(
                    date=clock.as_date(date),
                    time=clock.parse_hhmm(time).strftime("%H:%M"),
                    exercise_type=exercise_type,
                    max_capacity=capacity,
                    created_by=created_by,
                    trainer=trainer,
                    description=description or "",
                    price=pricing.session_price(),
                    package_price=pricing.package_price(),
                    package_duration_days=pricing.package_duration_days(),
                )
        except IntegrityError:
            log.warning("Concurrent create for an active session at %s", starts_at.isoformat())
            raise DuplicateSession()
        log.info("Session %s created for %s by user %s", session.pk, session.starts_at.isoformat(), created_by.pk)
        return session

    def delete_session(self, session_id) -> dict:
        """
        Notify every confirmed client, then delete the session and all its bookings.
        Returns counts: notified, failed, bookings_deleted.
        """
        session = TrainingSession.objects.select_related("trainer").filter(pk=session_id).first()
        if session is None:
            raise SessionNotFound()

        confirmed = list(
            session.bookings.filter(status=Booking.STATUS_CONFIRMED).select_related("client")
        )
        notified = failed = 0
        for booking in confirmed:
            ok = _run_isolated(f"cancellation for booking {booking.pk}", self.notifier.send_cancellation, booking, session)
            if ok:
                notified += 1
            else:
                failed += 1

        with transaction.atomic():
            deleted, _ = Booking.objects.filter(session_id=session.pk).delete()
            TrainingSession.objects.filter(pk=session.pk).delete()

        log.info(
            "Session %s deleted: %s booking(s) removed, %s notified, %s failed",
            session_id, deleted, notified, failed,
        )
        return {"notified": notified, "failed": failed, "bookings_deleted": deleted}

    # -------------------- Bookings --------------------
    @transaction.atomic
    def create_booking(
        self,
        session_id,
        client_id,
        group_size,
        *,
        is_package_booking=False,
        package_id=None,
        session_number=None,
        notes="",
        now=None,
    ):
        """
        Reserve seats in a session for a client.

        Raises:
            SessionNotFound / ClientNotFound
            InvalidBookingData: group size or package position out of range
            SessionInactive / CapacityExceeded
        """
        now = now or timezone.now()
        session = (
            TrainingSession.objects.select_for_update(of=("self",))
            .select_related("trainer")
            .filter(pk=session_id)
            .first()
        )
        if session is None:
            raise SessionNotFound()
        client = ClientProfile.objects.filter(pk=client_id).first()
        if client is None:
            raise ClientNotFound()

        size = self.ledger.validate_group_size(group_size)
        if session_number is not None and not 1 <= int(session_number) <= 8:
            raise InvalidBookingData("Package session number must be between 1 and 8.")

        self.ledger.can_book(session, self.ledger.occupied(session.pk), size)
        self.ledger.reserve_seats(session, size)

        deadline = self.policy.compute_deadline(session)
        booking = Booking.objects.create(
            session=session,
            client=client,
            group_size=size,
            notes=notes or "",
            is_package_booking=bool(is_package_booking),
            package_id=package_id or None,
            session_number=int(session_number) if session_number is not None else None,
            cancellation_deadline=deadline,
            can_cancel=now < deadline,
        )

        if booking.is_package_booking:
            self.packages.apply_package_booking(client, session, now=now)

        log.info("Booking %s: client %s took %s seat(s) in session %s", booking.pk, client.pk, size, session.pk)
        dispatch_after_commit(
            f"confirmation for booking {booking.pk}",
            self.notifier.send_booking_confirmation, booking, session,
        )
        return booking

    @transaction.atomic
    def cancel_booking(self, booking_id, actor_id, actor_role, now=None):
        """
        Cancel a booking on behalf of an actor.

        Raises:
            BookingNotFound, AlreadyCancelled
            NotAuthorized: a client cancelling someone else's booking
            CancellationWindowClosed: a client at or past the 24h deadline
        """
        now = now or timezone.now()
        booking = (
            Booking.objects.select_for_update(of=("self",))
            .select_related("session", "session__trainer", "client")
            .filter(pk=booking_id)
            .first()
        )
        if booking is None:
            raise BookingNotFound()

        self.policy.authorize(booking, actor_id, actor_role)
        if booking.status == Booking.STATUS_CANCELLED:
            raise AlreadyCancelled()
        self.policy.can_cancel(booking, actor_role, now=now)

        booking.status = Booking.STATUS_CANCELLED
        booking.cancellation_time = now
        booking.can_cancel = False
        booking.save(update_fields=["status", "cancellation_time", "can_cancel"])

        self.ledger.release_seats(booking.session, booking.group_size)
        if booking.is_package_booking:
            self.packages.apply_package_cancellation(booking.client)

        log.info("Booking %s cancelled by %s %s", booking.pk, actor_role, actor_id)
        dispatch_after_commit(
            f"cancellation for booking {booking.pk}",
            self.notifier.send_cancellation, booking, booking.session,
        )
        return booking

    def update_notes(self, booking_id, notes):
        updated = Booking.objects.filter(pk=booking_id).update(notes=notes or "")
        if not updated:
            raise BookingNotFound()
        return Booking.objects.select_related("client", "session").get(pk=booking_id)

    # -------------------- Packages --------------------
    def grant_package(self, client_id, sessions=None, days=None):
        return self.packages.grant_package(client_id, sessions=sessions, days=days)

    def reset_package(self, client_id):
        return self.packages.reset_package(client_id)

    # -------------------- Queries --------------------
    def sessions_on(self, day):
        day = clock.as_date(day)
        # Local midnights, so a DST day keeps its 23 or 25 hours
        start = clock.combine(day, "00:00")
        end = clock.combine(day + timedelta(days=1), "00:00")
        return (
            TrainingSession.objects
            .filter(is_active=True, starts_at__gte=start, starts_at__lt=end)
            .select_related("trainer", "created_by")
            .order_by("starts_at")
        )

    def trainers(self):
        return get_user_model().objects.filter(is_staff=True, is_active=True).order_by("id")

    def dashboard_stats(self, now=None) -> dict:
        """Admin dashboard counters."""
        now = now or timezone.now()
        confirmed = Booking.objects.filter(status=Booking.STATUS_CONFIRMED)
        return {
            "total_sessions": TrainingSession.objects.count(),
            "upcoming_sessions": TrainingSession.objects.filter(is_active=True, starts_at__gt=now).count(),
            "confirmed_bookings": confirmed.count(),
            "seats_booked": confirmed.aggregate(total=Sum("group_size"))["total"] or 0,
        }
