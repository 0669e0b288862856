from django.contrib import admin
from .models import TrainingSession, ClientProfile, Booking

@admin.register(TrainingSession)
class TrainingSessionAdmin(admin.ModelAdmin):
    list_display = ("id", "date", "time", "exercise_type", "trainer", "occupied_seats", "max_capacity", "is_active")
    list_filter = ("is_active", "exercise_type", "trainer")
    search_fields = ("description",)
    # Capacity is fixed at creation; seat counts move only through BookingManager.
    readonly_fields = ("starts_at", "occupied_seats", "max_capacity")

@admin.register(ClientProfile)
class ClientProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "active_sessions", "package_expiry")
    search_fields = ("name", "email")

@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "client", "session", "group_size", "status", "is_package_booking", "reminder_sent_at")
    list_filter = ("status", "is_package_booking")
    search_fields = ("client__name", "client__email")
    readonly_fields = ("cancellation_deadline", "can_cancel", "reminder_sent_at", "cancellation_time")
