"""
exceptions.py
-------------
Domain errors raised by the booking core.

Every error is recoverable at the request (or scheduler tick) boundary.
status_code lets the API layer turn them into responses in one place.
"""


class BookingError(Exception):
    status_code = 400
    default_message = "Booking operation failed."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


# -------------------- Validation --------------------
class InvalidTimeFormat(BookingError):
    default_message = "Time must be given as HH:MM."


class CapacityExceeded(BookingError):
    default_message = "Not enough spots available."


class SessionInactive(BookingError):
    default_message = "Session not available."


class DuplicateSession(BookingError):
    default_message = "Session already exists at this date and time."


class InvalidBookingData(BookingError):
    default_message = "Invalid booking data."


class AlreadyCancelled(BookingError):
    default_message = "This booking is already cancelled."


# -------------------- Authorization --------------------
class NotAuthorized(BookingError):
    status_code = 403
    default_message = "Not authorized."


class CancellationWindowClosed(BookingError):
    status_code = 403
    default_message = "Cannot cancel booking within 24 hours of the session time."


# -------------------- Not found --------------------
class SessionNotFound(BookingError):
    status_code = 404
    default_message = "Session not found."


class BookingNotFound(BookingError):
    status_code = 404
    default_message = "Booking not found."


class ClientNotFound(BookingError):
    status_code = 404
    default_message = "Client not found."
