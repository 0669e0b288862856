"""
NotificationService
-------------------
The booking core's outbound channel.

- notify(recipient, template_kind, context) renders a plain-text email for the
  given kind, sends it with Django's send_mail and records a Notification row.
- It never raises: failures are logged and reported as False, so a broken
  mail server cannot undo a committed booking or stop a reminder tick.
- Each send is bounded by settings.EMAIL_TIMEOUT (SMTP backend).

In development EMAIL_BACKEND is the console backend (prints the message);
tests use Django's locmem backend (mail.outbox).
"""

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

log = logging.getLogger(__name__)

TEMPLATE_BOOKING_CONFIRMATION = "booking_confirmation"
TEMPLATE_TRAINER_NEW_BOOKING = "trainer_new_booking"
TEMPLATE_CANCELLATION = "booking_cancellation"
TEMPLATE_REMINDER = "session_reminder"
TEMPLATE_CUSTOM = "custom_message"


def session_context(session) -> dict:
    trainer = session.trainer
    return {
        "session_id": session.pk,
        "session_date": session.date.strftime("%A, %B %d, %Y") if session.date else "",
        "session_time": session.time,
        "exercise_type": session.get_exercise_type_display(),
        "trainer_name": trainer.get_full_name() or trainer.get_username(),
        "description": session.description,
    }


def booking_context(booking, session=None) -> dict:
    """Flatten a booking into the values the templates use."""
    session = session or booking.session
    client = booking.client
    ctx = session_context(session)
    ctx.update({
        "booking_id": booking.pk,
        "client_name": client.name,
        "client_email": client.email,
        "client_phone": client.phone,
        "group_size": booking.group_size,
        "is_package_booking": booking.is_package_booking,
        "session_number": booking.session_number,
        "cancellation_deadline": (
            timezone.localtime(booking.cancellation_deadline).strftime("%Y-%m-%d %H:%M")
            if booking.cancellation_deadline else ""
        ),
    })
    return ctx


def _render(kind: str, ctx: dict):
    """Return (subject, body) for a template kind."""
    if kind == TEMPLATE_BOOKING_CONFIRMATION:
        package_line = (
            f"- Package session: {ctx.get('session_number') or '-'} of 8\n"
            if ctx.get("is_package_booking") else ""
        )
        return (
            "Booking Confirmation - Your Training Session is Confirmed!",
            f"Hi {ctx.get('client_name')},\n\n"
            f"Your training session is confirmed.\n"
            f"- Booking ID: {ctx.get('booking_id')}\n"
            f"- Session: {ctx.get('exercise_type')}\n"
            f"- Date: {ctx.get('session_date')}\n"
            f"- Time: {ctx.get('session_time')}\n"
            f"- Group size: {ctx.get('group_size')}\n"
            f"- Trainer: {ctx.get('trainer_name')}\n"
            f"{package_line}\n"
            f"You can cancel free of charge until {ctx.get('cancellation_deadline')}.\n",
        )
    if kind == TEMPLATE_TRAINER_NEW_BOOKING:
        return (
            "New Booking: Client Booked Your Training Session",
            f"Hi {ctx.get('trainer_name')},\n\n"
            f"{ctx.get('client_name')} ({ctx.get('client_email')}) booked your session.\n"
            f"- Session: {ctx.get('exercise_type')}\n"
            f"- Date: {ctx.get('session_date')}\n"
            f"- Time: {ctx.get('session_time')}\n"
            f"- Group size: {ctx.get('group_size')}\n",
        )
    if kind == TEMPLATE_CANCELLATION:
        return (
            "Booking Cancelled - Training Session",
            f"Dear {ctx.get('client_name')},\n\n"
            f"Your {ctx.get('exercise_type')} session on {ctx.get('session_date')} "
            f"at {ctx.get('session_time')} has been cancelled.\n"
            "We hope to see you again soon.\n",
        )
    if kind == TEMPLATE_REMINDER:
        return (
            "Reminder: Your Training Session Starts in 2 Hours!",
            f"Hi {ctx.get('client_name')},\n\n"
            f"Your {ctx.get('exercise_type')} session with {ctx.get('trainer_name')} "
            f"starts today at {ctx.get('session_time')}.\n"
            f"- Group size: {ctx.get('group_size')}\n\n"
            "See you soon!\n",
        )
    if kind == TEMPLATE_CUSTOM:
        return (
            ctx.get("subject") or "Message from your trainer",
            f"Hi {ctx.get('client_name') or 'there'},\n\n{ctx.get('message', '')}\n",
        )
    raise ValueError(f"Unknown notification template '{kind}'")


class NotificationService:
    """
    Sends booking emails and records them in notifications.Notification.
    """

    def notify(self, recipient: str, template_kind: str, context: dict, client=None) -> bool:
        """
        Send one message. Returns True on success, False on any failure.

        Args:
            recipient: destination email address
            template_kind: one of the TEMPLATE_* constants
            context: values for the template (see booking_context)
            client: optional ClientProfile, linked on the audit row
        """
        from notifications.models import Notification

        if not recipient:
            log.warning("Skipping %s notification: no recipient address", template_kind)
            return False

        try:
            subject, body = _render(template_kind, context)
        except ValueError:
            log.exception("Cannot render %s notification for %s", template_kind, recipient)
            return False

        sent = False
        try:
            send_mail(
                subject=subject,
                message=body,
                from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
                recipient_list=[recipient],
                fail_silently=False,  # raise so we can log; we still catch it below
            )
            sent = True
        except Exception:
            log.exception("Error sending %s email to %s", template_kind, recipient)

        try:
            Notification.objects.create(
                user=client,
                recipient=recipient,
                kind=template_kind,
                subject=subject[:200],
                message=body,
                sent=sent,
            )
        except Exception:
            log.exception("Could not record %s notification for %s", template_kind, recipient)
        return sent

    # -------------------- Booking flow helpers --------------------
    def send_booking_confirmation(self, booking, session=None) -> dict:
        """Confirmation to the client plus a 'new booking' alert to the trainer."""
        session = session or booking.session
        ctx = booking_context(booking, session)
        return {
            "client": self.notify(booking.client.email, TEMPLATE_BOOKING_CONFIRMATION, ctx, client=booking.client),
            "trainer": self.notify(session.trainer.email, TEMPLATE_TRAINER_NEW_BOOKING, ctx),
        }

    def send_cancellation(self, booking, session=None) -> bool:
        ctx = booking_context(booking, session)
        return self.notify(booking.client.email, TEMPLATE_CANCELLATION, ctx, client=booking.client)

    def send_reminder(self, booking, session=None) -> bool:
        ctx = booking_context(booking, session)
        return self.notify(booking.client.email, TEMPLATE_REMINDER, ctx, client=booking.client)

    # -------------------- Admin messages --------------------
    def send_custom_message(self, client, subject: str, message: str) -> bool:
        ctx = {"client_name": client.name, "subject": subject, "message": message}
        return self.notify(client.email, TEMPLATE_CUSTOM, ctx, client=client)

    def send_bulk_custom_message(self, clients, subject: str, message: str) -> list:
        return [
            {"client_id": c.pk, "email": c.email, "success": self.send_custom_message(c, subject, message)}
            for c in clients
        ]
