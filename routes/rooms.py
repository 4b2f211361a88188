from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.room import Room
from security.rbac import require_roles
from utils.audit import log_event
from utils.service_context import get_booking_service

rooms_bp = Blueprint("rooms", __name__, url_prefix="/rooms")

ROOM_TYPES = {"standard", "deluxe", "suite", "family"}


def _parse_price(value):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def _apply_room_fields(room: Room, data: dict, partial: bool):
    """Copy validated fields onto ``room``; returns an error message or None."""
    if "number" in data or not partial:
        number = (str(data.get("number") or "")).strip()
        if not number:
            return "number is required"
        room.number = number

    if "name" in data or not partial:
        name = (data.get("name") or "").strip()
        if not name:
            return "name is required"
        room.name = name

    if "price" in data or not partial:
        price = _parse_price(data.get("price"))
        if price is None:
            return "price must be a positive number"
        room.price = price

    if "room_type" in data:
        room_type = (data.get("room_type") or "").strip().lower()
        if room_type not in ROOM_TYPES:
            return f"room_type must be one of {sorted(ROOM_TYPES)}"
        room.room_type = room_type

    if "capacity" in data:
        capacity = data.get("capacity")
        if not isinstance(capacity, int) or capacity < 1:
            return "capacity must be a positive integer"
        room.capacity = capacity

    if "description" in data:
        room.description = (data.get("description") or "").strip() or None

    return None


@rooms_bp.get("")
def list_rooms():
    rooms = Room.query.filter_by(is_active=True).order_by(Room.number.asc()).all()
    return jsonify([r.to_dict() for r in rooms]), 200


@rooms_bp.get("/<int:room_id>")
def get_room(room_id: int):
    room = Room.query.filter_by(id=room_id, is_active=True).first()
    if not room:
        return jsonify(error="Room not found"), 404
    return jsonify(room.to_dict()), 200


@rooms_bp.get("/<int:room_id>/availability")
def room_availability(room_id: int):
    check_in = request.args.get("check_in")
    check_out = request.args.get("check_out")
    if not check_in or not check_out:
        return jsonify(error="check_in and check_out are required"), 400

    if not Room.query.filter_by(id=room_id, is_active=True).first():
        return jsonify(error="Room not found"), 404

    available = get_booking_service().check_room_availability(room_id, check_in, check_out)
    return jsonify(room_id=room_id, check_in=check_in, check_out=check_out, available=available), 200


# ---------- STAFF: manage rooms ----------
@rooms_bp.post("")
@require_roles("admin", "manager")
def create_room():
    data = request.get_json(silent=True) or {}
    room = Room()
    error = _apply_room_fields(room, data, partial=False)
    if error:
        return jsonify(error=error), 400

    db.session.add(room)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Room number already exists"), 409

    log_event("ROOM_CREATE", user_id=g.user.id, entity="room", entity_id=room.id)
    return jsonify(room.to_dict()), 201


@rooms_bp.put("/<int:room_id>")
@require_roles("admin", "manager")
def update_room(room_id: int):
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify(error="Room not found"), 404

    error = _apply_room_fields(room, request.get_json(silent=True) or {}, partial=True)
    if error:
        db.session.rollback()
        return jsonify(error=error), 400

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Room number already exists"), 409

    log_event("ROOM_UPDATE", user_id=g.user.id, entity="room", entity_id=room.id)
    return jsonify(room.to_dict()), 200


@rooms_bp.delete("/<int:room_id>")
@require_roles("admin")
def deactivate_room(room_id: int):
    # bookings keep referencing the room, so it is only hidden
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify(error="Room not found"), 404

    room.is_active = False
    db.session.commit()

    log_event("ROOM_DEACTIVATE", user_id=g.user.id, entity="room", entity_id=room_id)
    return jsonify(message="Room deactivated"), 200


@rooms_bp.get("/<int:room_id>/bookings")
@require_roles("admin", "manager")
def room_schedule(room_id: int):
    rows = get_booking_service().get_room_schedule(room_id)
    return jsonify([
        {
            "id": b.id,
            "user_id": b.user_id,
            "check_in": b.check_in.isoformat(),
            "check_out": b.check_out.isoformat(),
            "status": b.status,
        }
        for b in rows
    ]), 200
