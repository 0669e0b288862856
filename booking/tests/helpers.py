from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from booking.models import ClientProfile, TrainingSession

User = get_user_model()


def make_admin(username="coach", **extra):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass123",
        is_staff=True,
        **extra,
    )


def make_client(name="Jordan River", username=None, email=None):
    username = username or name.split()[0].lower()
    email = email or f"{username}@example.com"
    user = User.objects.create_user(username=username, email=email, password="testpass123")
    return ClientProfile.objects.create(user=user, name=name, email=email, phone="0400000000")


def future_start(days=3, hour=10, minute=0):
    """An aware instant `days` from now at hour:minute local time."""
    local = timezone.localtime(timezone.now() + timedelta(days=days))
    return local.replace(hour=hour, minute=minute, second=0, microsecond=0)


def make_session(trainer, starts_at=None, capacity=4, **extra):
    starts_at = timezone.localtime(starts_at or future_start())
    fields = {
        "exercise_type": TrainingSession.EXERCISE_REGULAR,
        "price": Decimal("50.00"),
        "package_price": Decimal("200.00"),
    }
    fields.update(extra)
    return TrainingSession.objects.create(
        date=starts_at.date(),
        time=starts_at.strftime("%H:%M"),
        max_capacity=capacity,
        created_by=trainer,
        trainer=trainer,
        **fields,
    )
