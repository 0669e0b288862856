from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Booking, ClientProfile, TrainingSession


class ClientProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClientProfile
        fields = ["id", "name", "email", "phone", "active_sessions", "package_expiry", "created_at"]
        read_only_fields = ["active_sessions", "package_expiry", "created_at"]


class TrainerSerializer(serializers.ModelSerializer):
    name = serializers.SerializerMethodField()

    class Meta:
        model = get_user_model()
        fields = ["id", "username", "name", "email"]

    def get_name(self, obj):
        return obj.get_full_name() or obj.get_username()


class TrainingSessionSerializer(serializers.ModelSerializer):
    trainer = TrainerSerializer(read_only=True)
    spots_left = serializers.IntegerField(read_only=True)

    class Meta:
        model = TrainingSession
        fields = [
            "id",
            "date",
            "time",
            "starts_at",
            "exercise_type",
            "max_capacity",
            "occupied_seats",
            "spots_left",
            "is_active",
            "trainer",
            "created_by",
            "description",
            "price",
            "package_price",
            "package_duration_days",
            "created_at",
        ]
        read_only_fields = fields


class SessionCreateSerializer(serializers.Serializer):
    # Format checks on date/time/capacity happen in BookingManager.create_session
    date = serializers.CharField()
    time = serializers.CharField(max_length=5)
    exercise_type = serializers.CharField()
    max_capacity = serializers.IntegerField()
    trainer = serializers.PrimaryKeyRelatedField(queryset=get_user_model().objects.filter(is_staff=True))
    description = serializers.CharField(required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    client = ClientProfileSerializer(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "session",
            "client",
            "group_size",
            "status",
            "notes",
            "is_package_booking",
            "package_id",
            "session_number",
            "cancellation_deadline",
            "can_cancel",
            "cancellation_time",
            "reminder_sent_at",
            "created_at",
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    session = serializers.IntegerField()
    group_size = serializers.IntegerField()
    is_package_booking = serializers.BooleanField(required=False, default=False)
    package_id = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    session_number = serializers.IntegerField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BookingNotesSerializer(serializers.Serializer):
    notes = serializers.CharField(allow_blank=True)


class SessionDetailSerializer(TrainingSessionSerializer):
    bookings = serializers.SerializerMethodField()
    occupied = serializers.SerializerMethodField()

    class Meta(TrainingSessionSerializer.Meta):
        fields = TrainingSessionSerializer.Meta.fields + ["bookings", "occupied"]
        read_only_fields = fields

    def _confirmed(self, obj):
        # Prefetched by the calendar view; queried otherwise
        cached = getattr(obj, "confirmed_bookings", None)
        if cached is not None:
            return cached
        return list(obj.bookings.filter(status=Booking.STATUS_CONFIRMED).select_related("client"))

    def get_bookings(self, obj):
        return BookingSerializer(self._confirmed(obj), many=True).data

    def get_occupied(self, obj):
        return sum(b.group_size for b in self._confirmed(obj))


class PackageGrantSerializer(serializers.Serializer):
    sessions = serializers.IntegerField(required=False, min_value=1, default=None)
    days = serializers.IntegerField(required=False, min_value=1, default=None)


class CustomMessageSerializer(serializers.Serializer):
    recipients = serializers.PrimaryKeyRelatedField(queryset=ClientProfile.objects.all(), many=True, allow_empty=False)
    subject = serializers.CharField(max_length=200)
    message = serializers.CharField()
