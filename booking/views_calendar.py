# booking/views_calendar.py
#
# Purpose:
# - Admin month view of training sessions at /api/calendar/<year>/<month>/.
# - Returns every active session in the month with its confirmed bookings,
#   grouped by day so a front end can render a grid without more queries.
#
# Behavior:
# - Only staff (or superusers) can access.
# - Cancelled bookings are excluded so the calendar reflects occupancy.
#
import calendar

from django.db.models import Prefetch
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import BookingError
from .models import Booking, TrainingSession
from .serializers import SessionDetailSerializer
from .services import clock
from .views import IsStaffOnly, _error


class SessionCalendarView(APIView):
    permission_classes = [IsStaffOnly]

    def get(self, request, year: int, month: int):
        if not 1 <= month <= 12:
            return Response({"detail": "Month must be between 1 and 12."}, status=400)

        # Month bounds as aware instants in the project timezone
        try:
            start_dt = clock.combine(f"{year:04d}-{month:02d}-01", "00:00")
            _, last_day_num = calendar.monthrange(year, month)
            end_dt = clock.combine(f"{year:04d}-{month:02d}-{last_day_num:02d}", "23:59")
        except BookingError as e:
            return _error(e)

        sessions = (
            TrainingSession.objects
            .filter(is_active=True, starts_at__gte=start_dt, starts_at__lte=end_dt)
            .select_related("trainer", "created_by")
            .prefetch_related(
                Prefetch(
                    "bookings",
                    queryset=Booking.objects.filter(status=Booking.STATUS_CONFIRMED).select_related("client"),
                    to_attr="confirmed_bookings",
                )
            )
            .order_by("starts_at")
        )

        days = {d: [] for d in range(1, last_day_num + 1)}
        for entry, session in zip(SessionDetailSerializer(sessions, many=True).data, sessions):
            days[session.date.day].append(entry)

        return Response({
            "year": year,
            "month": month,
            "month_name": calendar.month_name[month],
            "days": [{"day": d, "sessions": days[d]} for d in range(1, last_day_num + 1)],
        })
