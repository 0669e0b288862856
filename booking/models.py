# booking/models.py
#
# Purpose:
# - Core domain models for the personal-training booking platform.
#
# Design highlights:
# - TrainingSession: an admin-created slot with a fixed seat capacity (1..4).
#   • starts_at is derived from (date, "HH:MM") on every save so the reminder
#     scan can use a plain range query.
#   • occupied_seats is a denormalised counter kept in step with confirmed
#     bookings through conditional UPDATEs (see services/capacity_ledger.py).
# - ClientProfile: the person who books. Carries the package counters
#   (active_sessions, package_expiry).
# - Booking:
#   • group_size is the number of seats consumed, not distinct people
#   • status is uppercase "CONFIRMED" or "CANCELLED"; cancelled rows are kept
#   • cancellation_deadline/can_cancel are fixed when the booking is created
#     and are NOT recomputed if the session is edited later
#   • reminder_sent_at is the "already reminded" marker for the scheduler
#
# Notes for developers:
# - Deleting a TrainingSession cascades to its bookings at the DB level, but
#   BookingManager.delete_session() is the supported path because it notifies
#   every confirmed client first.
#

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


MAX_GROUP_SIZE = 4


# -------------------------
# Client (person who books)
# -------------------------
class ClientProfile(models.Model):
    """
    A client who books sessions.
    - 'user' link is optional (admins may register walk-in clients).
    - active_sessions/package_expiry track the 8-session package. They are a
      plain counter, not reconciled against payments.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="client_profile",
        null=True,
        blank=True,
    )
    name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True)
    active_sessions = models.IntegerField(default=0)
    package_expiry = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


# -------------------------
# Training session (bookable slot)
# -------------------------
class TrainingSession(models.Model):
    """
    A training slot scheduled by an admin.

    Rules:
    - max_capacity is between 1 and 4 and fixed at creation
    - sum of confirmed bookings' group_size never exceeds max_capacity
    - is_active=False hides the session from booking and reminders
    """
    EXERCISE_BODY_HEALTH = "body-health"
    EXERCISE_REGULAR = "regular-training"
    EXERCISE_CHOICES = [
        (EXERCISE_BODY_HEALTH, "Body health"),
        (EXERCISE_REGULAR, "Regular training"),
    ]

    date = models.DateField()
    time = models.CharField(max_length=5, help_text="Start time as HH:MM (24h).")
    starts_at = models.DateTimeField(db_index=True, editable=False)
    exercise_type = models.CharField(max_length=20, choices=EXERCISE_CHOICES)
    max_capacity = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(MAX_GROUP_SIZE)]
    )
    occupied_seats = models.PositiveSmallIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="created_sessions",
    )
    trainer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="training_sessions",
    )
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=8, decimal_places=2)
    package_price = models.DecimalField(max_digits=8, decimal_places=2)
    package_duration_days = models.PositiveIntegerField(default=90)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["starts_at"]
        constraints = [
            # one active session per start instant
            models.UniqueConstraint(
                fields=["starts_at"],
                condition=models.Q(is_active=True),
                name="unique_active_session_start",
            ),
        ]

    def save(self, *args, **kwargs):
        from .services.clock import combine

        previous_start = None
        if self.pk:
            previous_start = (
                TrainingSession.objects.filter(pk=self.pk).values_list("starts_at", flat=True).first()
            )

        self.starts_at = combine(self.date, self.time)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and ({"date", "time"} & set(update_fields)):
            kwargs["update_fields"] = set(update_fields) | {"starts_at"}
        super().save(*args, **kwargs)

        # Rescheduled: confirmed bookings are due a reminder for the new start
        if previous_start is not None and previous_start != self.starts_at:
            self.bookings.filter(
                status=Booking.STATUS_CONFIRMED, reminder_sent_at__isnull=False
            ).update(reminder_sent_at=None)

    @property
    def spots_left(self) -> int:
        return max(self.max_capacity - self.occupied_seats, 0)

    def __str__(self):
        return f"{self.get_exercise_type_display()} on {self.date} at {self.time}"


# -------------------------
# Booking record
# -------------------------
class Booking(models.Model):
    """
    A client's reservation of one or more seats in a TrainingSession.

    - status keeps history (CONFIRMED/CANCELLED)
    - cancellation_time records when a booking was cancelled
    - package fields are set only for bookings drawn against an 8-session pack
    """
    STATUS_CONFIRMED = "CONFIRMED"
    STATUS_CANCELLED = "CANCELLED"
    STATUS_CHOICES = [
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    session = models.ForeignKey(TrainingSession, on_delete=models.CASCADE, related_name="bookings")
    client = models.ForeignKey(ClientProfile, on_delete=models.CASCADE, related_name="bookings")
    group_size = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(MAX_GROUP_SIZE)]
    )
    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_CONFIRMED,
        help_text="Booking lifecycle status",
    )
    notes = models.TextField(blank=True, default="")

    is_package_booking = models.BooleanField(default=False)
    package_id = models.CharField(max_length=64, null=True, blank=True)
    session_number = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(8)],
        help_text="Position of this booking inside its package (1-8).",
    )

    cancellation_deadline = models.DateTimeField()
    can_cancel = models.BooleanField(default=True)
    cancellation_time = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the booking was cancelled (if applicable).",
    )
    reminder_sent_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the pre-session reminder was dispatched.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["session", "status"]),
        ]

    def __str__(self):
        return f"{self.client.name} → {self.session} ({self.group_size} seat(s))"
