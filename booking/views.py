# booking/views.py
#
# Purpose:
# - JSON API over the booking core (BookingManager and friends).
# - Sessions: admins create/delete; everyone signed in can list active ones.
# - Bookings: clients book and cancel their own; admins cancel any and edit notes.
# - Clients: admin list + package grant/reset.
# - Admin utilities: trainers list, dashboard stats, custom messages, manual reminder run.
#
# Notes for developers:
# - The acting user is always request.user, passed explicitly into the core
#   as (actor_id, actor_role). No view stores identity anywhere else.
# - Domain errors (booking.exceptions) carry their own HTTP status.
#
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import BookingError
from .models import Booking, ClientProfile, TrainingSession
from .serializers import (
    BookingCreateSerializer,
    BookingNotesSerializer,
    BookingSerializer,
    ClientProfileSerializer,
    CustomMessageSerializer,
    PackageGrantSerializer,
    SessionCreateSerializer,
    SessionDetailSerializer,
    TrainerSerializer,
    TrainingSessionSerializer,
)
from .services.booking_manager import BookingManager
from .services.cancellation_policy import role_for
from .services.notification_service import NotificationService
from .services.reminder_scheduler import send_reminders_now


# -------------------- Permissions --------------------
class IsStaffOnly(BasePermission):
    """
    Only allow requests from logged-in staff users.
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_staff)


def _error(exc: BookingError) -> Response:
    return Response({"detail": exc.message}, status=exc.status_code)


# -------------------- ViewSets --------------------
class TrainingSessionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Endpoints:
    - GET    /api/sessions/                 list (admins: all, clients: active)
    - POST   /api/sessions/                 create (admin)
    - DELETE /api/sessions/{id}/            delete + notify booked clients (admin)
    - GET    /api/sessions/{id}/details/    session with confirmed bookings (admin)
    - GET    /api/sessions/by-date/?date=   active sessions for a day
    """
    serializer_class = TrainingSessionSerializer
    manager = BookingManager()

    def get_queryset(self):
        qs = TrainingSession.objects.select_related("trainer").order_by("starts_at")
        if self.request.user.is_staff:
            return qs
        return qs.filter(is_active=True)

    def get_permissions(self):
        if self.action in ("create", "destroy", "details"):
            return [IsStaffOnly()]
        return [IsAuthenticated()]

    def create(self, request, *args, **kwargs):
        serializer = SessionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            session = self.manager.create_session(
                created_by=request.user,
                trainer=data["trainer"],
                date=data["date"],
                time=data["time"],
                exercise_type=data["exercise_type"],
                max_capacity=data["max_capacity"],
                description=data.get("description", ""),
            )
        except BookingError as e:
            return _error(e)
        return Response(TrainingSessionSerializer(session).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        try:
            result = self.manager.delete_session(kwargs.get("pk"))
        except BookingError as e:
            return _error(e)
        return Response({"success": True, **result}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"])
    def details(self, request, pk=None):
        session = get_object_or_404(TrainingSession.objects.select_related("trainer"), pk=pk)
        return Response(SessionDetailSerializer(session).data)

    @action(detail=False, methods=["get"], url_path="by-date")
    def by_date(self, request):
        day = parse_date((request.query_params.get("date") or "").strip())
        if day is None:
            return Response(
                {"detail": "Invalid date format. Use YYYY-MM-DD."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        sessions = self.manager.sessions_on(day)
        if request.user.is_staff:
            return Response(SessionDetailSerializer(sessions, many=True).data)
        return Response(TrainingSessionSerializer(sessions, many=True).data)


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Endpoints:
    - GET    /api/bookings/                list (admins: all, clients: own)
    - POST   /api/bookings/                create for the signed-in client
    - POST   /api/bookings/{id}/cancel/    cancel (24h rule for clients)
    - PATCH  /api/bookings/{id}/notes/     edit notes (admin)
    """
    serializer_class = BookingSerializer
    manager = BookingManager()

    def get_queryset(self):
        qs = Booking.objects.select_related("client", "session").order_by("-created_at")
        user = self.request.user
        if user.is_staff:
            return qs
        return qs.filter(client__user=user)

    def get_permissions(self):
        if self.action == "notes":
            return [IsStaffOnly()]
        return [IsAuthenticated()]

    def create(self, request, *args, **kwargs):
        if request.user.is_staff:
            return Response({"detail": "Admins cannot book sessions."}, status=status.HTTP_403_FORBIDDEN)
        client = getattr(request.user, "client_profile", None)
        if client is None:
            return Response({"detail": "No client profile for this account."}, status=status.HTTP_403_FORBIDDEN)

        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            booking = self.manager.create_booking(
                data["session"],
                client.pk,
                data["group_size"],
                is_package_booking=data["is_package_booking"],
                package_id=data.get("package_id"),
                session_number=data.get("session_number"),
                notes=data.get("notes", ""),
            )
        except BookingError as e:
            return _error(e)
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        try:
            self.manager.cancel_booking(pk, request.user.pk, role_for(request.user))
        except BookingError as e:
            return _error(e)
        return Response({"success": True, "detail": "Booking cancelled."}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["patch"])
    def notes(self, request, pk=None):
        serializer = BookingNotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            booking = self.manager.update_notes(pk, serializer.validated_data["notes"])
        except BookingError as e:
            return _error(e)
        return Response(BookingSerializer(booking).data)


class ClientProfileViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Admin view of clients and their package counters.
    - POST /api/clients/{id}/grant-package/   {"sessions": 8, "days": 90}
    - POST /api/clients/{id}/reset-package/
    """
    queryset = ClientProfile.objects.all().order_by("id")
    serializer_class = ClientProfileSerializer
    permission_classes = [IsStaffOnly]
    manager = BookingManager()

    @action(detail=True, methods=["post"], url_path="grant-package")
    def grant_package(self, request, pk=None):
        serializer = PackageGrantSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            client = self.manager.grant_package(
                pk,
                sessions=serializer.validated_data.get("sessions"),
                days=serializer.validated_data.get("days"),
            )
        except BookingError as e:
            return _error(e)
        return Response({"success": True, "client": ClientProfileSerializer(client).data})

    @action(detail=True, methods=["post"], url_path="reset-package")
    def reset_package(self, request, pk=None):
        try:
            client = self.manager.reset_package(pk)
        except BookingError as e:
            return _error(e)
        return Response({"success": True, "client": ClientProfileSerializer(client).data})


# -------------------- Admin utilities --------------------
class TrainerListView(APIView):
    permission_classes = [IsStaffOnly]

    def get(self, request):
        return Response(TrainerSerializer(BookingManager().trainers(), many=True).data)


class DashboardStatsView(APIView):
    """GET /api/stats/ - admin dashboard counters."""
    permission_classes = [IsStaffOnly]

    def get(self, request):
        return Response(BookingManager().dashboard_stats())


class CustomMessageView(APIView):
    """
    POST /api/messages/
    {"recipients": [client ids], "subject": "...", "message": "..."}
    """
    permission_classes = [IsStaffOnly]

    def post(self, request):
        serializer = CustomMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        results = NotificationService().send_bulk_custom_message(
            data["recipients"], data["subject"], data["message"]
        )
        return Response({"success": True, "results": results})


class RunRemindersView(APIView):
    """POST /api/reminders/run/ - run the reminder check now."""
    permission_classes = [IsStaffOnly]

    def post(self, request):
        sent = send_reminders_now()
        return Response({"success": True, "sent": sent, "message": "Reminder check triggered"})
