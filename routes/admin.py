from datetime import date

from flask import Blueprint, jsonify, request

from models import db
from models.booking import Booking
from models.holiday import Holiday
from models.invite import Invite
from models.member import Member
from models.session import Session
from security.invites import issue_invite
from security.rbac import require_admin
from services import get_services
from services.booking_engine import clean_text, normalize_email
from services.errors import ConflictError, NotFoundError, ValidationError
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

ADMIN = "admin"


def _booking_row(b, m, s):
    return {
        "booking_id": b.id,
        "notes": b.notes,
        "created_at": b.created_at.isoformat(),
        "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "cancelled_by": b.cancelled_by,
        "refunded": b.refunded,
        "member_id": m.id,
        "member_name": m.name,
        "member_email": m.email,
        "member_credits": m.credits,
        "slot": b.slot_dict(s),
    }


def _parse_credits(value):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError("INVALID_CREDITS")
    return value


# ---------- members ----------
@admin_bp.get("/members")
@require_admin
def list_members():
    members = Member.query.order_by(Member.created_at.desc()).all()
    return jsonify(members=[m.to_dict() for m in members]), 200


@admin_bp.post("/members")
@require_admin
def create_member():
    services = get_services()
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    name = clean_text(data.get("name"), 120) or None
    if not email or "@" not in email or len(email) > 255:
        raise ValidationError("MISSING_EMAIL")
    credits = _parse_credits(data.get("credits", 0))

    if services.store.get_member_by_email(email):
        raise ConflictError("EMAIL_EXISTS")
    with services.store.atomic():
        member = services.store.create_member(email, name=name, credits=credits)

    token = issue_invite(member.id, services.settings.invite_ttl_days)
    services.notifier.notify_invite(member, token)

    log_event("MEMBER_CREATE", actor=ADMIN, entity="member", entity_id=member.id, metadata={"credits": credits})
    return jsonify(member_id=member.id, invite=token), 201


@admin_bp.patch("/members/<int:member_id>")
@require_admin
def update_member(member_id: int):
    services = get_services()
    data = request.get_json(silent=True) or {}

    member = services.store.get_member(member_id)
    if not member:
        raise NotFoundError("NOT_FOUND")

    changes = {}
    with services.store.atomic():
        if "credits" in data and data["credits"] is not None:
            credits = _parse_credits(data["credits"])
            services.store.set_member_credits(member.id, credits)
            changes["credits"] = credits
        name = data.get("name")
        if isinstance(name, str) and name.strip():
            member.name = name.strip()[:120]
            changes["name"] = member.name
    if not changes:
        raise ValidationError("NO_CHANGES")

    log_event("MEMBER_UPDATE", actor=ADMIN, entity="member", entity_id=member_id, metadata=changes)
    return jsonify(member=services.store.get_member(member_id).to_dict()), 200


@admin_bp.delete("/members/<int:member_id>")
@require_admin
def delete_member(member_id: int):
    services = get_services()
    member = services.store.get_member(member_id)
    if not member:
        raise NotFoundError("NOT_FOUND")
    if Booking.query.filter_by(member_id=member_id).first():
        raise ConflictError("MEMBER_HAS_BOOKINGS")

    Invite.query.filter_by(member_id=member_id).delete()
    Session.query.filter_by(member_id=member_id).delete()
    db.session.delete(member)
    db.session.commit()

    log_event("MEMBER_DELETE", actor=ADMIN, entity="member", entity_id=member_id)
    return jsonify(message="Member deleted"), 200


def _send_invite(member):
    services = get_services()
    token = issue_invite(member.id, services.settings.invite_ttl_days)
    services.notifier.notify_invite(member, token)
    log_event("MEMBER_INVITE", actor=ADMIN, entity="member", entity_id=member.id)
    return token


@admin_bp.post("/members/<int:member_id>/reset-invite")
@require_admin
def reset_invite(member_id: int):
    member = get_services().store.get_member(member_id)
    if not member:
        raise NotFoundError("NOT_FOUND")
    _send_invite(member)
    return jsonify(message="Invite sent"), 200


@admin_bp.post("/invites/resend")
@require_admin
def resend_invite():
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    if not email:
        raise ValidationError("MISSING_EMAIL")
    member = get_services().store.get_member_by_email(email)
    if not member:
        raise NotFoundError("NO_SUCH_MEMBER")
    _send_invite(member)
    return jsonify(message="Invite sent"), 200


# ---------- slots ----------
@admin_bp.get("/slots")
@require_admin
def list_slots():
    services = get_services()
    slots = services.store.list_slots(newest_first=True)
    return jsonify(slots=[s.to_dict(services.calendar) for s in slots]), 200


@admin_bp.post("/slots")
@require_admin
def create_slot():
    services = get_services()
    data = request.get_json(silent=True) or {}
    force = str(request.args.get("force", data.get("force", ""))).lower() == "true"

    slot = services.slots.create_slot(
        data.get("start_iso"),
        location=data.get("location"),
        duration_minutes=data.get("duration_minutes"),
        force=force,
    )

    log_event("SLOT_CREATE", actor=ADMIN, entity="slot", entity_id=slot.id, metadata={"force": force})
    return jsonify(id=slot.id, slot=slot.to_dict(services.calendar)), 201


@admin_bp.patch("/slots/<int:slot_id>")
@require_admin
def update_slot(slot_id: int):
    services = get_services()
    data = request.get_json(silent=True) or {}

    slot, old_start, booking = services.slots.update_slot(
        slot_id, start_iso=data.get("start_iso"), location=data.get("location")
    )

    notified = False
    if booking is not None and slot.start_time != old_start:
        services.notifier.notify_reschedule(booking.member, old_start, slot)
        notified = True

    log_event("SLOT_UPDATE", actor=ADMIN, entity="slot", entity_id=slot_id, metadata={"notified": notified})
    return jsonify(slot=slot.to_dict(services.calendar), notified=notified), 200


@admin_bp.delete("/slots/<int:slot_id>")
@require_admin
def delete_slot(slot_id: int):
    get_services().slots.delete_slot(slot_id)
    log_event("SLOT_DELETE", actor=ADMIN, entity="slot", entity_id=slot_id)
    return jsonify(message="Slot deleted"), 200


@admin_bp.post("/slots/<int:slot_id>/cancel")
@require_admin
def cancel_slot(slot_id: int):
    result = get_services().cancellation.cancel_slot(slot_id)

    log_event(
        "SLOT_CANCEL",
        actor=ADMIN,
        entity="slot",
        entity_id=slot_id,
        metadata={"booking_id": result.booking_id, "refunded": result.refunded},
    )
    return jsonify(deleted=True, refunded=result.refunded, notified=result.notified), 200


@admin_bp.post("/maintain-slots")
@require_admin
def maintain_slots():
    services = get_services()
    result = services.slots.maintain(request.args.get("days", services.settings.maintain_default_days))

    log_event(
        "SLOTS_MAINTAIN",
        actor=ADMIN,
        metadata={"purged": result.purged, "created": result.created, "days": result.days},
    )
    return jsonify(purged=result.purged, created=result.created, days=result.days), 200


# ---------- bookings ----------
@admin_bp.get("/bookings")
@require_admin
def list_bookings():
    services = get_services()
    include_cancelled = str(request.args.get("includeCancelled", "")).lower() == "true"
    include_past = str(request.args.get("includePast", "")).lower() == "true"

    rows = services.store.list_bookings(
        now=None if include_past else services.calendar.now(),
        active_only=not include_cancelled,
    )
    return jsonify(bookings=[_booking_row(b, m, s) for b, m, s in rows]), 200


@admin_bp.get("/bookings/upcoming")
@require_admin
def upcoming_bookings():
    services = get_services()
    rows = services.store.list_bookings(now=services.calendar.now(), active_only=True)
    return jsonify(bookings=[_booking_row(b, m, s) for b, m, s in rows]), 200


@admin_bp.post("/bookings/<int:booking_id>/cancel")
@require_admin
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    raw = request.args.get("refund", data.get("refund", True))
    refund = str(raw).strip().lower() != "false"

    result = get_services().cancellation.cancel_by_admin(booking_id, refund=refund)

    log_event(
        "ADMIN_BOOKING_CANCEL",
        actor=ADMIN,
        entity="booking",
        entity_id=booking_id,
        metadata={"refunded": result.refunded},
    )
    return jsonify(refunded=result.refunded), 200


@admin_bp.patch("/bookings/<int:booking_id>/move")
@require_admin
def move_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    result = get_services().cancellation.move(booking_id, data.get("new_slot_id"))

    log_event(
        "BOOKING_MOVE",
        actor=ADMIN,
        entity="booking",
        entity_id=booking_id,
        metadata={"from": result.old_slot_id, "to": result.new_slot_id},
    )
    return jsonify(new_slot_id=result.new_slot_id), 200


# ---------- holidays ----------
@admin_bp.get("/holidays")
@require_admin
def list_holidays():
    rows = Holiday.query.order_by(Holiday.day.asc()).all()
    return jsonify(holidays=[h.to_dict() for h in rows]), 200


def _holiday_day(value):
    try:
        return date.fromisoformat(clean_text(value))
    except ValueError:
        raise ValidationError("INVALID_DAY")


@admin_bp.post("/holidays")
@require_admin
def upsert_holiday():
    data = request.get_json(silent=True) or {}
    day = _holiday_day(data.get("day"))
    note = clean_text(data.get("note"), 255) or None

    row = db.session.get(Holiday, day)
    if row is None:
        row = Holiday(day=day)
        db.session.add(row)
    row.note = note
    db.session.commit()

    log_event("HOLIDAY_UPSERT", actor=ADMIN, entity="holiday", entity_id=day.isoformat(), metadata={"note": note})
    return jsonify(holiday=row.to_dict()), 200


@admin_bp.delete("/holidays/<day>")
@require_admin
def delete_holiday(day):
    day = _holiday_day(day)
    row = db.session.get(Holiday, day)
    if row is None:
        raise NotFoundError("NOT_FOUND")
    db.session.delete(row)
    db.session.commit()

    log_event("HOLIDAY_DELETE", actor=ADMIN, entity="holiday", entity_id=day.isoformat())
    return jsonify(message="Holiday removed"), 200
