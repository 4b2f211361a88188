"""Concurrent booking attempts against a file-backed SQLite database.

The in-memory database used elsewhere lives on a single connection, so it
cannot show two sessions racing each other.
"""

import threading
import time
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.booking import Booking
from models.room import Room
from models.user import User
from services.errors import ConflictError
from services.repositories import SqlBookingRepository
from utils.service_context import get_booking_service


@pytest.fixture
def file_app(tmp_path):
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'race.db'}"

    app = create_app(FileConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_racing_creates_for_one_room_admit_exactly_one(file_app, monkeypatch):
    room = Room(number="301", name="Corner suite", price=Decimal("150.00"))
    users = [User(email=f"racer{i}@example.com", password_hash="x") for i in range(2)]
    db.session.add_all([room, *users])
    db.session.commit()
    room_id = room.id
    user_ids = [u.id for u in users]
    db.session.remove()

    lookup = SqlBookingRepository.find_conflicting

    def slow_lookup(self, *args, **kwargs):
        found = lookup(self, *args, **kwargs)
        # both requests would pass the check without the room lock
        time.sleep(0.3)
        return found

    monkeypatch.setattr(SqlBookingRepository, "find_conflicting", slow_lookup)

    check_in = datetime.utcnow().replace(microsecond=0) + timedelta(days=10)
    results = []
    barrier = threading.Barrier(2)

    def attempt(user_id):
        with file_app.app_context():
            barrier.wait()
            try:
                booking = get_booking_service().create_booking(
                    {"room_id": room_id, "check_in": check_in, "check_out": check_in + timedelta(days=2)},
                    user_id,
                )
                results.append(booking.id)
            except ConflictError as exc:
                results.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=attempt, args=(uid,)) for uid in user_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 2
    assert sum(isinstance(r, ConflictError) for r in results) == 1
    assert Booking.query.filter_by(room_id=room_id).count() == 1
