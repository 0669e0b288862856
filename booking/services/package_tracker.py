"""
package_tracker.py
------------------
Keeps a client's 8-session package counters.

Rules:
- package booking created:    active_sessions += 1, package_expiry = now + session duration
- package booking cancelled:  active_sessions -= 1 (clamped at 0)
- admin grant:                active_sessions += sessions, package_expiry = now + days
- admin reset:                active_sessions = 0, package_expiry = None

Expiry is overwritten, not extended, on every package booking or grant.
Counters are changed with F() expressions so concurrent updates to the same
client serialize in the database instead of losing writes.
"""

import logging

from django.db.models import F
from django.utils import timezone

from ..exceptions import ClientNotFound, InvalidBookingData
from ..models import ClientProfile
from . import clock, pricing

log = logging.getLogger(__name__)


class PackageTracker:
    def _load(self, client_id) -> ClientProfile:
        client = ClientProfile.objects.filter(pk=client_id).first()
        if client is None:
            raise ClientNotFound()
        return client

    def apply_package_booking(self, client, session, now=None) -> ClientProfile:
        now = now or timezone.now()
        ClientProfile.objects.filter(pk=client.pk).update(
            active_sessions=F("active_sessions") + 1,
            package_expiry=clock.package_expiry(now, session.package_duration_days),
        )
        client.refresh_from_db(fields=["active_sessions", "package_expiry"])
        return client

    def apply_package_cancellation(self, client) -> ClientProfile:
        updated = ClientProfile.objects.filter(pk=client.pk, active_sessions__gt=0).update(
            active_sessions=F("active_sessions") - 1
        )
        if not updated:
            log.warning("Client %s has no active package sessions to release; keeping 0", client.pk)
        client.refresh_from_db(fields=["active_sessions", "package_expiry"])
        return client

    def grant_package(self, client_id, sessions=None, days=None, now=None) -> ClientProfile:
        sessions = pricing.package_sessions() if sessions is None else int(sessions)
        days = pricing.package_duration_days() if days is None else int(days)
        if sessions < 1 or days < 1:
            raise InvalidBookingData("Package sessions and days must be positive.")

        client = self._load(client_id)
        now = now or timezone.now()
        ClientProfile.objects.filter(pk=client.pk).update(
            active_sessions=F("active_sessions") + sessions,
            package_expiry=clock.package_expiry(now, days),
        )
        client.refresh_from_db(fields=["active_sessions", "package_expiry"])
        log.info("Granted %s package sessions to client %s (expires %s)", sessions, client.pk, client.package_expiry)
        return client

    def reset_package(self, client_id) -> ClientProfile:
        client = self._load(client_id)
        ClientProfile.objects.filter(pk=client.pk).update(active_sessions=0, package_expiry=None)
        client.refresh_from_db(fields=["active_sessions", "package_expiry"])
        log.info("Reset package for client %s", client.pk)
        return client
