from django.db import models

class SystemSetting(models.Model):
    """
    Simple key/value settings store.
    Example keys (override settings.BOOKING_DEFAULTS at runtime):
      - SESSION_PRICE (e.g., '50')
      - PACKAGE_PRICE (e.g., '200')
      - PACKAGE_SESSIONS (e.g., '8')
      - PACKAGE_DURATION_DAYS (e.g., '90')
    """
    key = models.CharField(max_length=100, unique=True)
    value = models.CharField(max_length=200)

    def __str__(self):
        return f"{self.key}={self.value}"
