from datetime import datetime
from models.db import db
from services.booking import BOOKING_STATUSES

_STATUS_SQL = ", ".join(f"'{s}'" for s in BOOKING_STATUSES)

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    room_id = db.Column(db.Integer, db.ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # naive UTC
    check_in = db.Column(db.DateTime, nullable=False)
    check_out = db.Column(db.DateTime, nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    status = db.Column(db.String(20), nullable=False, default="pending")
    # status values: pending, confirmed, canceled, completed

    guests = db.Column(db.Integer, nullable=True)
    special_requests = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    room = db.relationship("Room", back_populates="bookings")
    user = db.relationship("User", back_populates="bookings")

    __table_args__ = (
        db.CheckConstraint("check_in < check_out", name="ck_booking_dates_ordered"),
        db.CheckConstraint(f"status IN ({_STATUS_SQL})", name="ck_booking_status"),
        db.Index("ix_bookings_room_dates", "room_id", "check_in", "check_out"),
    )

    def to_dict(self, include_room: bool = False, include_user: bool = False) -> dict:
        out = {
            "id": self.id,
            "room_id": self.room_id,
            "user_id": self.user_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "total_price": float(self.total_price),
            "status": self.status,
            "guests": self.guests,
            "special_requests": self.special_requests,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_room and self.room is not None:
            out["room"] = self.room.to_dict()
        if include_user and self.user is not None:
            out["user"] = self.user.public_fields()
        return out
