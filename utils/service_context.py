import logging
from flask import current_app

from services.booking import BookingPolicy, BookingService
from services.repositories import SqlBookingRepository, SqlRoomRepository

def init_booking_service(app):
    app.extensions["booking_service"] = BookingService(
        rooms=SqlRoomRepository(),
        bookings=SqlBookingRepository(),
        logger=logging.getLogger("services.booking"),
        policy=BookingPolicy.from_config(app.config),
    )

def get_booking_service() -> BookingService:
    return current_app.extensions["booking_service"]
