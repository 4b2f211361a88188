"""Room availability and booking lifecycle.

The engine works against the repository interfaces in
``services.repositories`` and never touches the database session itself,
so the same rules run against the SQL store in production and in-memory
stores in tests.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

BOOKING_STATUSES = ("pending", "confirmed", "canceled", "completed")
ACTIVE_STATUSES = ("pending", "confirmed")
PRIVILEGED_ROLES = ("admin", "manager")

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class BookingPolicy:
    active_statuses: tuple = ACTIVE_STATUSES
    allowed_statuses: tuple = BOOKING_STATUSES
    privileged_roles: tuple = PRIVILEGED_ROLES

    @classmethod
    def from_config(cls, config) -> "BookingPolicy":
        return cls(
            active_statuses=tuple(config.get("BOOKING_ACTIVE_STATUSES", ACTIVE_STATUSES)),
            privileged_roles=tuple(config.get("BOOKING_PRIVILEGED_ROLES", PRIVILEGED_ROLES)),
        )


def to_datetime(value, field: str) -> datetime:
    """Coerce an ISO string, date or datetime into a naive UTC datetime."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"Invalid {field} date") from None
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)

    if not isinstance(value, datetime):
        raise ValidationError(f"Invalid {field} date")

    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def intervals_conflict(existing_in, existing_out, check_in, check_out) -> bool:
    # Boundaries are inclusive: a stay ending on the requested check-in conflicts.
    return (
        check_in <= existing_in <= check_out
        or check_in <= existing_out <= check_out
        or (existing_in <= check_in and existing_out >= check_out)
    )


def calculate_total_price(price_per_night, check_in: datetime, check_out: datetime):
    """Nightly price times the stay length, partial days rounded up."""
    days = math.ceil((check_out - check_in) / _ONE_DAY)
    return price_per_night * days


class BookingService:
    def __init__(self, rooms, bookings, logger: logging.Logger = None, clock=None, policy: BookingPolicy = None):
        self._rooms = rooms
        self._bookings = bookings
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock or datetime.utcnow
        self._policy = policy or BookingPolicy()

    # ---------- availability ----------

    def check_room_availability(self, room_id, check_in, check_out) -> bool:
        check_in = to_datetime(check_in, "check_in")
        check_out = to_datetime(check_out, "check_out")

        if check_in >= check_out:
            self._logger.warning(
                "Availability check rejected for room %s: check_in %s is not before check_out %s",
                room_id, check_in.isoformat(), check_out.isoformat(),
            )
            raise ValidationError("check_out must be after check_in")

        conflicting = self._bookings.find_conflicting(
            room_id, check_in, check_out, self._policy.active_statuses
        )
        return conflicting is None

    calculate_total_price = staticmethod(calculate_total_price)

    # ---------- create ----------

    def create_booking(self, booking_data: dict, requesting_user_id: int):
        room_id = booking_data.get("room_id")
        room = self._rooms.find_room(room_id)
        if room is None:
            self._logger.warning("Booking rejected: room %s not found (user=%s)", room_id, requesting_user_id)
            raise NotFoundError("Room not found")

        check_in = to_datetime(booking_data.get("check_in"), "check_in")
        check_out = to_datetime(booking_data.get("check_out"), "check_out")

        with self._bookings.reservation_lock(room_id):
            if not self.check_room_availability(room_id, check_in, check_out):
                self._logger.warning(
                    "Booking rejected: room %s unavailable %s..%s (user=%s)",
                    room_id, check_in.isoformat(), check_out.isoformat(), requesting_user_id,
                )
                raise ConflictError("Room is not available for the selected dates")

            total_price = calculate_total_price(room.price, check_in, check_out)
            booking = self._bookings.create(
                room_id=room_id,
                user_id=requesting_user_id,
                check_in=check_in,
                check_out=check_out,
                total_price=total_price,
                status="pending",
                guests=booking_data.get("guests"),
                special_requests=booking_data.get("special_requests"),
            )

        self._logger.info(
            "Booking %s created for room %s by user %s (total=%s)",
            booking.id, room_id, requesting_user_id, total_price,
        )
        return booking

    # ---------- reads ----------

    def get_user_bookings(self, user_id: int) -> list:
        return self._bookings.find_by_owner(user_id)

    def get_all_bookings(self) -> list:
        return self._bookings.find_all()

    def get_room_schedule(self, room_id) -> list:
        """Active bookings holding the room, earliest check-in first."""
        if self._rooms.find_room(room_id) is None:
            self._logger.warning("Schedule requested for unknown room %s", room_id)
            raise NotFoundError("Room not found")
        return self._bookings.find_by_room(room_id, self._policy.active_statuses)

    def get_booking_by_id(self, booking_id: int, requesting_user_id: int, requesting_role: str):
        booking = self._find_or_raise(booking_id)
        self._ensure_access(booking, requesting_user_id, requesting_role)
        return booking

    # ---------- status changes ----------

    def cancel_booking(self, booking_id: int, requesting_user_id: int, requesting_role: str):
        booking = self._find_or_raise(booking_id)
        self._ensure_access(booking, requesting_user_id, requesting_role)

        if self._clock() > booking.check_in:
            self._logger.warning(
                "Cancellation of booking %s rejected: check-in %s has passed (user=%s)",
                booking_id, booking.check_in.isoformat(), requesting_user_id,
            )
            raise ConflictError("Booking cannot be canceled after the check-in date")

        booking = self._bookings.update_status(booking, "canceled")
        self._logger.info("Booking %s canceled by user %s", booking_id, requesting_user_id)
        return booking

    def update_booking_status(self, booking_id: int, new_status: str):
        booking = self._find_or_raise(booking_id)

        if new_status not in self._policy.allowed_statuses:
            self._logger.warning("Status update of booking %s rejected: invalid status %r", booking_id, new_status)
            raise ValidationError("Invalid booking status")

        previous = booking.status
        booking = self._bookings.update_status(booking, new_status)
        self._logger.info("Booking %s status %s -> %s", booking_id, previous, new_status)
        return booking

    # ---------- helpers ----------

    def _find_or_raise(self, booking_id: int):
        booking = self._bookings.find_by_id(booking_id)
        if booking is None:
            self._logger.warning("Booking %s not found", booking_id)
            raise NotFoundError("Booking not found")
        return booking

    def _ensure_access(self, booking, requesting_user_id: int, requesting_role: str) -> None:
        if booking.user_id != requesting_user_id and requesting_role not in self._policy.privileged_roles:
            self._logger.warning(
                "Access to booking %s denied for user %s (role=%s)",
                booking.id, requesting_user_id, requesting_role,
            )
            raise ForbiddenError("Access denied")
