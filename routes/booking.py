from datetime import date, timedelta

from flask import Blueprint, request, jsonify, g

from services import get_services
from services.errors import ServiceError, ValidationError
from utils.auth_context import member_required
from utils.audit import log_event

booking_bp = Blueprint("booking", __name__, url_prefix="/api")


def _flag(name: str) -> bool:
    return str(request.args.get(name, "")).strip().lower() in ("1", "true", "yes")


def _parse_day(value):
    # Expect YYYY-MM-DD, read as a business-local calendar day
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError("INVALID_DAY")


# ---------- PUBLIC: view slots ----------
@booking_bp.get("/slots")
def list_slots():
    services = get_services()
    cal = services.calendar

    start = end = None
    if request.args.get("from"):
        start = cal.start_of_day(_parse_day(request.args["from"]))
    if request.args.get("to"):
        end = cal.start_of_day(_parse_day(request.args["to"]) + timedelta(days=1))

    slots = services.slots.list_open(
        start=start,
        end=end,
        only_available=_flag("onlyAvailable"),
        include_holidays=_flag("includeHolidays"),
    )
    return jsonify(slots=slots), 200


# ---------- PUBLIC: book slot (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("/book")
def create_booking():
    data = request.get_json(silent=True) or {}
    slot_id = data.get("slot_id")
    email = data.get("email")

    try:
        receipt = get_services().booking.book(slot_id, email, data.get("notes"))
    except ServiceError as exc:
        log_event("BOOKING_FAIL", actor=str(email or "")[:80], entity="slot", entity_id=slot_id, metadata={"error": exc.code})
        raise

    log_event(
        "BOOKING_CREATE",
        actor=f"member:{receipt.member_id}",
        entity="booking",
        entity_id=receipt.booking_id,
        metadata={"slot_id": receipt.slot_id},
    )
    return jsonify(booking_id=receipt.booking_id, credits=receipt.credits), 201


# ---------- MEMBERS: view my bookings ----------
@booking_bp.get("/member/bookings")
@member_required
def my_bookings():
    rows = get_services().store.member_bookings(g.member.id)
    return jsonify(bookings=[
        {
            "booking_id": b.id,
            "notes": b.notes,
            "created_at": b.created_at.isoformat(),
            "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
            "refunded": b.refunded,
            "slot": b.slot_dict(s),
        }
        for b, s in rows
    ]), 200


# ---------- MEMBERS: cancel booking (refund cutoff) ----------
@booking_bp.post("/member/bookings/<int:booking_id>/cancel")
@member_required
def cancel_booking(booking_id: int):
    result = get_services().cancellation.cancel_by_member(booking_id, g.member.id)

    log_event(
        "BOOKING_CANCEL",
        actor=f"member:{g.member.id}",
        entity="booking",
        entity_id=booking_id,
        metadata={"refunded": result.refunded},
    )
    return jsonify(refunded=result.refunded), 200
