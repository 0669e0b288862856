"""
capacity_ledger.py
------------------
Seat accounting for training sessions.

- occupied(): seats taken by CONFIRMED bookings (sum of group_size).
- can_book(): validates a prospective booking against max_capacity.
- reserve_seats()/release_seats(): move TrainingSession.occupied_seats with a
  single conditional UPDATE, so two requests racing for the last seat cannot
  both succeed. The row count returned by UPDATE is the source of truth.

Change log:
- reconcile() rebuilds occupied_seats from bookings when the counter drifts.
"""

import logging

from django.db.models import F, Sum

from ..exceptions import CapacityExceeded, InvalidBookingData, SessionInactive
from ..models import MAX_GROUP_SIZE, Booking, TrainingSession

log = logging.getLogger(__name__)


class CapacityLedger:
    def occupied(self, session_id) -> int:
        total = (
            Booking.objects
            .filter(session_id=session_id, status=Booking.STATUS_CONFIRMED)
            .aggregate(total=Sum("group_size"))["total"]
        )
        return total or 0

    def validate_group_size(self, group_size) -> int:
        try:
            size = int(group_size)
        except (TypeError, ValueError):
            raise InvalidBookingData("Group size must be a whole number.")
        if not 1 <= size <= MAX_GROUP_SIZE:
            raise InvalidBookingData(f"Group size must be between 1 and {MAX_GROUP_SIZE}.")
        return size

    def can_book(self, session, existing_occupied: int, requested_group_size: int) -> bool:
        """
        True iff the session is active and the seats fit.

        Raises:
            SessionInactive: session.is_active is False
            CapacityExceeded: existing_occupied + requested > max_capacity
        """
        if not session.is_active:
            raise SessionInactive()
        if existing_occupied + requested_group_size > session.max_capacity:
            left = max(session.max_capacity - existing_occupied, 0)
            raise CapacityExceeded(f"Not enough spots available ({left} left).")
        return True

    def reserve_seats(self, session, group_size: int) -> None:
        """
        Atomically add `group_size` seats, refusing to pass max_capacity.
        `session` may be stale; the WHERE clause re-checks against the DB row.
        """
        updated = (
            TrainingSession.objects
            .filter(
                pk=session.pk,
                is_active=True,
                occupied_seats__lte=F("max_capacity") - group_size,
            )
            .update(occupied_seats=F("occupied_seats") + group_size)
        )
        if updated:
            session.refresh_from_db(fields=["occupied_seats"])
            return

        # Nothing changed: work out why for the caller.
        session.refresh_from_db(fields=["is_active", "occupied_seats", "max_capacity"])
        if not session.is_active:
            raise SessionInactive()
        left = max(session.max_capacity - session.occupied_seats, 0)
        raise CapacityExceeded(f"Not enough spots available ({left} left).")

    def release_seats(self, session, group_size: int) -> None:
        updated = (
            TrainingSession.objects
            .filter(pk=session.pk, occupied_seats__gte=group_size)
            .update(occupied_seats=F("occupied_seats") - group_size)
        )
        if not updated:
            log.warning(
                "Seat counter for session %s below released group size %s; reconciling",
                session.pk, group_size,
            )
            self.reconcile(session)
            return
        session.refresh_from_db(fields=["occupied_seats"])

    def reconcile(self, session) -> int:
        """Recompute occupied_seats from confirmed bookings."""
        total = self.occupied(session.pk)
        TrainingSession.objects.filter(pk=session.pk).update(occupied_seats=total)
        session.occupied_seats = total
        return total
