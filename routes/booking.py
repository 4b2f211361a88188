from flask import Blueprint, request, jsonify, g

from security.rbac import current_role, require_roles
from services.booking import to_datetime
from services.errors import ValidationError
from utils.auth_context import login_required
from utils.audit import log_event
from utils.service_context import get_booking_service

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


def _parse_booking_payload(data: dict) -> dict:
    room_id = data.get("room_id")
    if not isinstance(room_id, int) or isinstance(room_id, bool):
        raise ValidationError("room_id must be an integer")
    if not data.get("check_in") or not data.get("check_out"):
        raise ValidationError("check_in and check_out are required")

    guests = data.get("guests")
    if guests is not None and (not isinstance(guests, int) or guests < 1):
        raise ValidationError("guests must be a positive integer")

    return {
        "room_id": room_id,
        "check_in": to_datetime(data["check_in"], "check_in"),
        "check_out": to_datetime(data["check_out"], "check_out"),
        "guests": guests,
        "special_requests": (data.get("special_requests") or "").strip() or None,
    }


# ---------- GUESTS: create booking ----------
@booking_bp.post("")
@login_required
def create_booking():
    payload = _parse_booking_payload(request.get_json(silent=True) or {})

    booking = get_booking_service().create_booking(payload, g.user.id)

    log_event(
        "BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
        metadata={"room_id": booking.room_id, "total_price": booking.total_price},
    )
    return jsonify(booking.to_dict(include_room=True)), 201


# ---------- GUESTS: my bookings ----------
@booking_bp.get("/me")
@login_required
def my_bookings():
    rows = get_booking_service().get_user_bookings(g.user.id)
    return jsonify([b.to_dict(include_room=True) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = get_booking_service().get_booking_by_id(booking_id, g.user.id, current_role())
    return jsonify(booking.to_dict(include_room=True, include_user=True)), 200


# ---------- owner or staff: cancel (closes at check-in) ----------
@booking_bp.put("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    booking = get_booking_service().cancel_booking(booking_id, g.user.id, current_role())

    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(booking.to_dict(include_room=True)), 200


# ---------- STAFF: list all bookings ----------
@booking_bp.get("")
@require_roles("admin", "manager")
def list_all_bookings():
    rows = get_booking_service().get_all_bookings()
    return jsonify([b.to_dict(include_room=True, include_user=True) for b in rows]), 200


# ---------- ADMIN: set status ----------
@booking_bp.put("/<int:booking_id>/status")
@require_roles("admin")
def update_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not isinstance(status, str):
        return jsonify(error="status required"), 400

    booking = get_booking_service().update_booking_status(booking_id, status)

    log_event(
        "BOOKING_STATUS_UPDATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
        metadata={"status": booking.status},
    )
    return jsonify(booking.to_dict()), 200
