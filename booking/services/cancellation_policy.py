"""
cancellation_policy.py
----------------------
24-hour cancellation rule.

- A booking's deadline is its session's start instant minus 24 hours. It is
  computed once, when the booking is created, and stored on the booking.
- Admins may cancel at any time.
- Clients may cancel their own bookings while now < deadline.

Identity is always passed in explicitly as (actor_id, actor_role).
"""

from django.utils import timezone

from ..exceptions import CancellationWindowClosed, NotAuthorized
from . import clock

ROLE_ADMIN = "admin"
ROLE_CLIENT = "client"


def role_for(user) -> str:
    """Map a Django user onto the core's role names."""
    if user is not None and getattr(user, "is_staff", False):
        return ROLE_ADMIN
    return ROLE_CLIENT


class CancellationPolicy:
    def compute_deadline(self, session):
        return clock.deadline(clock.combine(session.date, session.time))

    def authorize(self, booking, actor_id, actor_role) -> None:
        """
        Admins may act on any booking; clients only on their own.

        Raises:
            NotAuthorized
        """
        if actor_role == ROLE_ADMIN:
            return
        owner_user_id = booking.client.user_id
        if actor_id is None or owner_user_id is None or owner_user_id != actor_id:
            raise NotAuthorized("Not authorized to cancel this booking.")

    def can_cancel(self, booking, actor_role, now=None) -> bool:
        """
        Raises:
            CancellationWindowClosed: non-admin at or after the deadline
        """
        if actor_role == ROLE_ADMIN:
            return True
        now = now or timezone.now()
        if now < booking.cancellation_deadline:
            return True
        raise CancellationWindowClosed()
