# booking/urls.py
#
# Purpose:
# - Expose REST API endpoints for the booking app via DRF router
# - Admin utilities: trainers, month calendar, stats, custom messages, manual reminders
#
# Notes for developers:
# - The REST API routes are registered using DefaultRouter.
# - Cancellation POST goes through BookingManager, which enforces the 24-hour
#   rule for clients and sends the cancellation email after commit.

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    BookingViewSet,
    ClientProfileViewSet,
    CustomMessageView,
    DashboardStatsView,
    RunRemindersView,
    TrainerListView,
    TrainingSessionViewSet,
)
from .views_calendar import SessionCalendarView

# --------------------------
# DRF Router registrations
# --------------------------
router = DefaultRouter()
router.register(r"sessions", TrainingSessionViewSet, basename="session")
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"clients", ClientProfileViewSet, basename="client")

# --------------------------
# URL patterns
# --------------------------
urlpatterns = [
    path("", include(router.urls)),
    path("trainers/", TrainerListView.as_view(), name="trainers"),
    path("calendar/<int:year>/<int:month>/", SessionCalendarView.as_view(), name="session_calendar"),
    path("stats/", DashboardStatsView.as_view(), name="dashboard_stats"),
    path("messages/", CustomMessageView.as_view(), name="custom_message"),
    path("reminders/run/", RunRemindersView.as_view(), name="run_reminders"),
]
