# notifications/models.py
#
# Purpose:
# - Record every message the booking core tried to send (confirmation,
#   trainer alert, cancellation, reminder, custom message).
#
# Design:
# - FK to booking.ClientProfile when the recipient is a client; trainer
#   alerts only carry the recipient address.
# - 'sent' indicates delivery attempt result.
#
from django.db import models
from booking.models import ClientProfile


class Notification(models.Model):
    user = models.ForeignKey(ClientProfile, on_delete=models.CASCADE, null=True, blank=True)
    recipient = models.EmailField()
    kind = models.CharField(max_length=40)
    subject = models.CharField(max_length=200)
    message = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    sent = models.BooleanField(default=False)

    def __str__(self) -> str:
        label = getattr(self.user, "name", None) or self.recipient or "client"
        return f"{self.kind} to {label} at {self.created_at:%Y-%m-%d %H:%M}"
