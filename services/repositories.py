import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterable, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from models import db
from models.booking import Booking
from models.room import Room
from services.errors import ConflictError

logger = logging.getLogger(__name__)

OVERLAP_CONSTRAINT = "ex_bookings_no_overlap"


class RoomRepository(ABC):
    @abstractmethod
    def find_room(self, room_id) -> Optional[Room]:
        """Return the bookable room with this id, or None."""
        raise NotImplementedError


class BookingRepository(ABC):
    @abstractmethod
    def create(self, **fields) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, booking_id) -> Optional[Booking]:
        raise NotImplementedError

    @abstractmethod
    def find_by_owner(self, user_id) -> List[Booking]:
        """Owner's bookings, newest created first."""
        raise NotImplementedError

    @abstractmethod
    def find_all(self) -> List[Booking]:
        """Every booking, newest created first."""
        raise NotImplementedError

    @abstractmethod
    def find_by_room(self, room_id, statuses: Iterable[str]) -> List[Booking]:
        raise NotImplementedError

    @abstractmethod
    def find_conflicting(self, room_id, check_in, check_out, statuses: Iterable[str]) -> Optional[Booking]:
        """First booking in ``statuses`` whose stay overlaps [check_in, check_out]."""
        raise NotImplementedError

    @abstractmethod
    def update_status(self, booking: Booking, status: str) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def reservation_lock(self, room_id):
        """Context manager serialising check-then-insert for one room."""
        raise NotImplementedError


class SqlRoomRepository(RoomRepository):
    def find_room(self, room_id) -> Optional[Room]:
        if room_id is None:
            return None
        return Room.query.filter_by(id=room_id, is_active=True).first()


class SqlBookingRepository(BookingRepository):
    def create(self, **fields) -> Booking:
        booking = Booking(**fields)
        db.session.add(booking)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            if OVERLAP_CONSTRAINT not in str(exc.orig):
                logger.error("Booking insert for room %s failed: %s", fields.get("room_id"), exc.orig)
                raise
            logger.warning(
                "Booking insert for room %s rejected by %s (user=%s)",
                fields.get("room_id"), OVERLAP_CONSTRAINT, fields.get("user_id"),
            )
            raise ConflictError("Room is not available for the selected dates") from None
        return booking

    def find_by_id(self, booking_id) -> Optional[Booking]:
        return (
            Booking.query
            .options(joinedload(Booking.room), joinedload(Booking.user))
            .filter_by(id=booking_id)
            .first()
        )

    def find_by_owner(self, user_id) -> List[Booking]:
        return (
            Booking.query
            .options(joinedload(Booking.room))
            .filter_by(user_id=user_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .all()
        )

    def find_all(self) -> List[Booking]:
        return (
            Booking.query
            .options(joinedload(Booking.room), joinedload(Booking.user))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .all()
        )

    def find_by_room(self, room_id, statuses: Iterable[str]) -> List[Booking]:
        return (
            Booking.query
            .filter(Booking.room_id == room_id, Booking.status.in_(list(statuses)))
            .order_by(Booking.check_in.asc())
            .all()
        )

    def find_conflicting(self, room_id, check_in, check_out, statuses: Iterable[str]) -> Optional[Booking]:
        return (
            Booking.query
            .filter(
                Booking.room_id == room_id,
                Booking.status.in_(list(statuses)),
                or_(
                    Booking.check_in.between(check_in, check_out),
                    Booking.check_out.between(check_in, check_out),
                    and_(Booking.check_in <= check_in, Booking.check_out >= check_out),
                ),
            )
            .first()
        )

    def update_status(self, booking: Booking, status: str) -> Booking:
        booking.status = status
        db.session.commit()
        return booking

    @contextmanager
    def reservation_lock(self, room_id):
        # No-op UPDATE on the room row: a row lock on PostgreSQL, the database
        # write lock on SQLite. Held until the commit in create() or the rollback below.
        try:
            (
                db.session.query(Room)
                .filter(Room.id == room_id)
                .update({Room.id: Room.id}, synchronize_session=False)
            )
            yield
        except Exception:
            db.session.rollback()
            raise
