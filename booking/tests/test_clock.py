from datetime import date, datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase, override_settings
from django.utils import timezone

from booking.exceptions import InvalidTimeFormat
from booking.services import clock


class ClockTests(SimpleTestCase):
    def test_combine_builds_aware_instant(self):
        instant = clock.combine(date(2025, 6, 1), "09:30")
        self.assertTrue(timezone.is_aware(instant))
        local = timezone.localtime(instant)
        self.assertEqual((local.year, local.month, local.day), (2025, 6, 1))
        self.assertEqual((local.hour, local.minute, local.second), (9, 30, 0))

    def test_combine_accepts_iso_date_string(self):
        self.assertEqual(clock.combine("2025-06-01", "07:05"), clock.combine(date(2025, 6, 1), "7:05"))

    @override_settings(TIME_ZONE="Australia/Sydney")
    def test_combine_uses_project_timezone(self):
        instant = clock.combine(date(2025, 6, 1), "10:00")
        self.assertEqual(instant.astimezone(dt_timezone.utc).hour, 0)

    def test_combine_rejects_malformed_time(self):
        for bad in ["1000", "10:00:00", "ab:cd", "10-00", "", "25:00", "10:75"]:
            with self.subTest(value=bad):
                with self.assertRaises(InvalidTimeFormat):
                    clock.combine(date(2025, 6, 1), bad)

    def test_combine_rejects_bad_date(self):
        for bad in ["June first", "2026-02-30", "2025-13-01", "0000-01-01"]:
            with self.subTest(value=bad):
                with self.assertRaises(InvalidTimeFormat):
                    clock.combine(bad, "10:00")

    def test_deadline_is_24_hours_earlier(self):
        start = clock.combine(date(2025, 6, 2), "18:00")
        self.assertEqual(clock.deadline(start), start - timedelta(hours=24))

    def test_reminder_window_is_asymmetric_around_two_hours(self):
        now = timezone.make_aware(datetime(2025, 6, 1, 8, 0))
        start, end = clock.reminder_window(now)
        self.assertEqual(start, now + timedelta(hours=1, minutes=53))
        self.assertEqual(end, now + timedelta(hours=2, minutes=8))
        self.assertEqual(end - start, timedelta(minutes=15))

    def test_package_expiry(self):
        now = timezone.make_aware(datetime(2025, 1, 1, 12, 0))
        self.assertEqual(clock.package_expiry(now, 90), now + timedelta(days=90))
