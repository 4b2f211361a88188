from datetime import datetime
from models.db import db

class Room(db.Model):
    __tablename__ = "rooms"

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    room_type = db.Column(db.String(40), nullable=False, default="standard")
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(10, 2), nullable=False)  # per night
    capacity = db.Column(db.Integer, nullable=False, default=2)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    bookings = db.relationship("Booking", back_populates="room", lazy="dynamic")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "name": self.name,
            "room_type": self.room_type,
            "description": self.description,
            "price": float(self.price),
            "capacity": self.capacity,
            "is_active": self.is_active,
        }
