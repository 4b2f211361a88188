from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.room import Room
from models.user import User
from security.password import hash_password
from utils.seed import grant_role

PASSWORD = "Sup3rSecret"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(email, role="guest", first_name="Test", last_name="User"):
        user = User(
            email=email,
            password_hash=hash_password(PASSWORD),
            first_name=first_name,
            last_name=last_name,
        )
        db.session.add(user)
        db.session.flush()
        grant_role(user, role)
        return user
    return _make


@pytest.fixture
def make_room(app):
    counter = {"n": 100}

    def _make(price="100.00", **fields):
        counter["n"] += 1
        room = Room(
            number=fields.pop("number", str(counter["n"])),
            name=fields.pop("name", "Garden view double"),
            price=Decimal(price),
            **fields,
        )
        db.session.add(room)
        db.session.commit()
        return room
    return _make


@pytest.fixture
def login_as(app, make_user):
    """Create a user, log in on a fresh client and return (client, csrf headers, user)."""
    def _login(email, role="guest"):
        user = make_user(email, role=role)
        c = app.test_client()
        resp = c.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        headers = {"X-CSRF-Token": c.get_cookie("csrf_token").value}
        return c, headers, user
    return _login


@pytest.fixture
def future():
    """Whole days from now at 14:00, naive UTC."""
    base = (datetime.utcnow() + timedelta(days=30)).replace(hour=14, minute=0, second=0, microsecond=0)

    def _day(n):
        return base + timedelta(days=n)
    return _day
