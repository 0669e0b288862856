"""
reminder_scheduler.py
---------------------
"Your session starts in 2 hours" reminders.

Cycle (every REMINDER_INTERVAL_MINUTES, or on demand):
    idle -> scanning -> dispatching -> idle

1) Compute the reminder window for `now` (clock.reminder_window).
2) Find active sessions whose start instant lies inside the window.
3) For each CONFIRMED booking without a reminder marker, claim it by setting
   reminder_sent_at with a conditional UPDATE, then send the reminder.

Only the process that wins the claim sends, so overlapping windows, a manual
"run now" during a tick, or two scheduler processes never double-send.
A failure on one session or booking is logged and the scan moves on; there
is no retry for a claimed booking whose email failed.
"""

import logging
import threading

from django.conf import settings
from django.db import DatabaseError, close_old_connections
from django.utils import timezone

from ..models import Booking, TrainingSession
from . import clock
from .notification_service import NotificationService

log = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_SCANNING = "scanning"
STATE_DISPATCHING = "dispatching"

JOB_ID = "session_reminders"


class ReminderScheduler:
    def __init__(self, notifier=None):
        self.notifier = notifier or NotificationService()
        self.state = STATE_IDLE
        self.last_run_at = None
        self.last_sent_count = 0
        self._state_lock = threading.Lock()

    def _set_state(self, state):
        with self._state_lock:
            self.state = state

    def due_sessions(self, now):
        window_start, window_end = clock.reminder_window(now)
        log.info("Checking for sessions between %s and %s", window_start.isoformat(), window_end.isoformat())
        return list(
            TrainingSession.objects
            .filter(is_active=True, starts_at__gte=window_start, starts_at__lte=window_end)
            .select_related("trainer")
            .order_by("starts_at")
        )

    def _claim(self, booking, now) -> bool:
        """Mark the booking as reminded; False if someone else already did."""
        claimed = (
            Booking.objects
            .filter(pk=booking.pk, status=Booking.STATUS_CONFIRMED, reminder_sent_at__isnull=True)
            .update(reminder_sent_at=now)
        )
        if claimed:
            booking.reminder_sent_at = now
        return bool(claimed)

    def _dispatch_session(self, session, now) -> int:
        bookings = list(
            session.bookings
            .filter(status=Booking.STATUS_CONFIRMED, reminder_sent_at__isnull=True)
            .select_related("client")
        )
        sent = 0
        for booking in bookings:
            try:
                if not self._claim(booking, now):
                    continue
                if self.notifier.send_reminder(booking, session):
                    sent += 1
                    log.info("Reminder sent to %s for session %s", booking.client.email, session.pk)
                else:
                    log.warning("Reminder to %s for session %s was not delivered", booking.client.email, session.pk)
            except Exception:
                log.exception("Failed to send reminder for booking %s", booking.pk)
        return sent

    def scan_and_dispatch(self, now=None) -> int:
        """
        Run one reminder cycle. Returns the number of reminders delivered.
        """
        now = now or timezone.now()
        sent = 0
        self._set_state(STATE_SCANNING)
        try:
            try:
                sessions = self.due_sessions(now)
            except DatabaseError:
                log.exception("Error looking up sessions for reminders")
                return 0

            self._set_state(STATE_DISPATCHING)
            for session in sessions:
                log.info("Found session %s at %s - sending reminders", session.pk, session.starts_at.isoformat())
                try:
                    sent += self._dispatch_session(session, now)
                except DatabaseError:
                    log.exception("Error loading bookings for session %s", session.pk)
        finally:
            self.last_run_at = now
            self.last_sent_count = sent
            self._set_state(STATE_IDLE)

        log.info("Reminder check finished: %s reminder(s) sent", sent)
        return sent


def send_reminders_now(now=None, notifier=None) -> int:
    """Manual, out-of-band run of the reminder cycle."""
    log.info("Manually triggering reminder check...")
    return ReminderScheduler(notifier=notifier).scan_and_dispatch(now=now)


def _run_tick(reminders: ReminderScheduler):
    close_old_connections()
    try:
        reminders.scan_and_dispatch()
    except Exception:
        log.exception("Error in reminder tick")
    finally:
        close_old_connections()


def build_scheduler(scheduler=None, interval_minutes=None, reminders=None):
    """
    Register the periodic reminder job on an APScheduler scheduler.

    max_instances=1 and coalesce=True keep a slow tick from stacking up runs.
    """
    from apscheduler.schedulers.blocking import BlockingScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    if interval_minutes is None:
        interval_minutes = getattr(settings, "REMINDER_INTERVAL_MINUTES", 15)
    scheduler = scheduler or BlockingScheduler(timezone=str(timezone.get_current_timezone()))
    reminders = reminders or ReminderScheduler()

    scheduler.add_job(
        _run_tick,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[reminders],
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=interval_minutes * 60,
        replace_existing=True,
    )
    log.info("Reminder scheduler initialized - checking every %s minutes", interval_minutes)
    return scheduler
