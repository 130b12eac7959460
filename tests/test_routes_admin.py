from conftest import utc
from models import AuditLog


def test_admin_key_is_required(client):
    resp = client.get("/api/admin/slots")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "ADMIN_ONLY"}

    resp = client.get("/api/admin/slots", headers={"X-ADMIN-KEY": "wrong"})
    assert resp.status_code == 401


def test_create_slot_policy_and_force(client, admin_headers):
    friday = {"start_iso": "2026-10-23T18:00:00"}

    refused = client.post("/api/admin/slots", json=friday, headers=admin_headers)
    assert refused.status_code == 400
    assert refused.get_json() == {"error": "DAY_NOT_ALLOWED"}

    forced = client.post("/api/admin/slots?force=true", json=friday, headers=admin_headers)
    assert forced.status_code == 201
    assert forced.get_json()["slot"]["start_time"] == "2026-10-23T17:00:00Z"

    dup = client.post("/api/admin/slots?force=true", json=friday, headers=admin_headers)
    assert dup.status_code == 409
    assert dup.get_json() == {"error": "DUPLICATE_START"}


def test_admin_rejects_non_string_fields(client, admin_headers):
    slot = client.post("/api/admin/slots", json={"start_iso": 1761000000}, headers=admin_headers)
    assert slot.status_code == 400
    assert slot.get_json() == {"error": "INVALID_DATETIME"}

    member = client.post("/api/admin/members", json={"email": 12345, "name": 7}, headers=admin_headers)
    assert member.status_code == 400
    assert member.get_json() == {"error": "MISSING_EMAIL"}

    resend = client.post("/api/admin/invites/resend", json={"email": ["sam@example.com"]}, headers=admin_headers)
    assert resend.status_code == 400
    assert resend.get_json() == {"error": "MISSING_EMAIL"}

    holiday = client.post("/api/admin/holidays", json={"day": 20261020}, headers=admin_headers)
    assert holiday.status_code == 400
    assert holiday.get_json() == {"error": "INVALID_DAY"}


def test_maintain_slots_endpoint(client, admin_headers):
    resp = client.post("/api/admin/maintain-slots?days=7", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.get_json() == {"purged": 0, "created": 18, "days": 7}
    assert AuditLog.query.filter_by(action="SLOTS_MAINTAIN", actor="admin").count() == 1

    listed = client.get("/api/admin/slots", headers=admin_headers).get_json()["slots"]
    assert len(listed) == 18


def test_moving_a_booked_slot_notifies_member(client, admin_headers, notifier, make_member, make_slot):
    make_member()
    slot = make_slot(utc(2026, 10, 20, 16))
    client.post("/api/book", json={"slot_id": slot.id, "email": "sam@example.com"})

    resp = client.patch(
        f"/api/admin/slots/{slot.id}",
        json={"start_iso": "2026-10-20T20:00:00"},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.get_json()["notified"] is True
    assert notifier.names()[-1] == "reschedule"


def test_delete_slot_endpoint(client, admin_headers, make_slot):
    slot_id = make_slot(utc(2026, 10, 20, 16)).id
    assert client.delete(f"/api/admin/slots/{slot_id}", headers=admin_headers).status_code == 200
    missing = client.delete(f"/api/admin/slots/{slot_id}", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.get_json() == {"error": "SLOT_NOT_FOUND"}


def test_cancel_slot_endpoint(client, admin_headers, services, notifier, make_member, make_slot):
    member = make_member(credits=2)
    member_id = member.id
    open_id = make_slot(utc(2026, 10, 20, 16)).id
    booked_id = make_slot(utc(2026, 10, 21, 17), location="Hull").id
    booking_id = services.booking.book(booked_id, "sam@example.com").booking_id

    plain = client.post(f"/api/admin/slots/{open_id}/cancel", headers=admin_headers)
    assert plain.status_code == 200
    assert plain.get_json() == {"deleted": True, "refunded": False, "notified": False}

    resp = client.post(f"/api/admin/slots/{booked_id}/cancel", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json() == {"deleted": True, "refunded": True, "notified": True}
    assert services.store.get_slot(booked_id) is None
    assert services.store.credits_of(member_id) == 2

    name, args = notifier.calls[-1]
    assert name == "cancellation"
    assert args[1].start_time == utc(2026, 10, 21, 17)
    assert args[2] is True

    history = client.get(
        "/api/admin/bookings?includeCancelled=true&includePast=true", headers=admin_headers
    ).get_json()["bookings"]
    assert [b["booking_id"] for b in history] == [booking_id]
    assert history[0]["refunded"] is True
    assert history[0]["slot"]["start_time"] == "2026-10-21T17:00:00Z"
    assert history[0]["slot"]["location"] == "Hull"
    assert AuditLog.query.filter_by(action="SLOT_CANCEL").count() == 2

    missing = client.post(f"/api/admin/slots/{booked_id}/cancel", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.get_json() == {"error": "SLOT_NOT_FOUND"}


def test_admin_cancel_and_move(client, admin_headers, services, make_member, make_slot):
    member = make_member(credits=2)
    first = make_slot(utc(2026, 10, 20, 16))
    second = make_slot(utc(2026, 10, 21, 17))
    third = make_slot(utc(2026, 10, 22, 16))
    booking_id = client.post("/api/book", json={"slot_id": first.id, "email": "sam@example.com"}).get_json()["booking_id"]

    moved = client.patch(
        f"/api/admin/bookings/{booking_id}/move",
        json={"new_slot_id": second.id},
        headers=admin_headers,
    )
    assert moved.status_code == 200
    assert moved.get_json() == {"new_slot_id": second.id}

    upcoming = client.get("/api/admin/bookings/upcoming", headers=admin_headers).get_json()["bookings"]
    assert [(b["booking_id"], b["slot"]["id"]) for b in upcoming] == [(booking_id, second.id)]

    cancelled = client.post(
        f"/api/admin/bookings/{booking_id}/cancel?refund=false",
        headers=admin_headers,
    )
    assert cancelled.status_code == 200
    assert cancelled.get_json() == {"refunded": False}
    assert services.store.credits_of(member.id) == 1

    stale = client.patch(
        f"/api/admin/bookings/{booking_id}/move",
        json={"new_slot_id": third.id},
        headers=admin_headers,
    )
    assert stale.status_code == 409
    assert stale.get_json() == {"error": "ALREADY_CANCELLED"}

    assert client.get("/api/admin/bookings", headers=admin_headers).get_json()["bookings"] == []
    history = client.get("/api/admin/bookings?includeCancelled=true", headers=admin_headers).get_json()["bookings"]
    assert history[0]["cancelled_by"] == "admin"


def test_member_management(client, admin_headers, make_slot):
    created = client.post(
        "/api/admin/members",
        json={"email": "Sam@Example.com", "name": "Sam", "credits": 1},
        headers=admin_headers,
    )
    member_id = created.get_json()["member_id"]

    dup = client.post("/api/admin/members", json={"email": "sam@example.com"}, headers=admin_headers)
    assert dup.status_code == 409
    assert dup.get_json() == {"error": "EMAIL_EXISTS"}

    bad = client.patch(f"/api/admin/members/{member_id}", json={"credits": -1}, headers=admin_headers)
    assert bad.get_json() == {"error": "INVALID_CREDITS"}

    empty = client.patch(f"/api/admin/members/{member_id}", json={}, headers=admin_headers)
    assert empty.get_json() == {"error": "NO_CHANGES"}

    topped = client.patch(f"/api/admin/members/{member_id}", json={"credits": 10}, headers=admin_headers)
    assert topped.get_json()["member"]["credits"] == 10

    slot = make_slot(utc(2026, 10, 20, 16))
    client.post("/api/book", json={"slot_id": slot.id, "email": "sam@example.com"})
    blocked = client.delete(f"/api/admin/members/{member_id}", headers=admin_headers)
    assert blocked.status_code == 409
    assert blocked.get_json() == {"error": "MEMBER_HAS_BOOKINGS"}

    members = client.get("/api/admin/members", headers=admin_headers).get_json()["members"]
    assert [m["email"] for m in members] == ["sam@example.com"]
    assert members[0]["credits"] == 9


def test_delete_member_without_bookings(client, admin_headers):
    member_id = client.post(
        "/api/admin/members", json={"email": "alex@example.com"}, headers=admin_headers
    ).get_json()["member_id"]

    assert client.delete(f"/api/admin/members/{member_id}", headers=admin_headers).status_code == 200
    assert client.get("/api/admin/members", headers=admin_headers).get_json()["members"] == []


def test_resend_invite(client, admin_headers, notifier):
    client.post("/api/admin/members", json={"email": "sam@example.com"}, headers=admin_headers)

    resp = client.post("/api/admin/invites/resend", json={"email": "sam@example.com"}, headers=admin_headers)
    missing = client.post("/api/admin/invites/resend", json={"email": "x@example.com"}, headers=admin_headers)

    assert resp.status_code == 200
    assert notifier.names() == ["invite", "invite"]
    assert missing.status_code == 404
    assert missing.get_json() == {"error": "NO_SUCH_MEMBER"}


def test_holidays(client, admin_headers, make_slot):
    make_slot(utc(2026, 10, 20, 16))

    resp = client.post("/api/admin/holidays", json={"day": "2026-10-20", "note": "Half term"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["holiday"] == {"day": "2026-10-20", "note": "Half term"}

    assert client.get("/api/slots").get_json()["slots"] == []
    flagged = client.get("/api/slots?includeHolidays=true").get_json()["slots"]
    assert flagged[0]["holiday"] is True

    bad = client.post("/api/admin/holidays", json={"day": "tomorrow"}, headers=admin_headers)
    assert bad.get_json() == {"error": "INVALID_DAY"}

    listed = client.get("/api/admin/holidays", headers=admin_headers).get_json()["holidays"]
    assert [h["day"] for h in listed] == ["2026-10-20"]

    assert client.delete("/api/admin/holidays/2026-10-20", headers=admin_headers).status_code == 200
    assert client.delete("/api/admin/holidays/2026-10-20", headers=admin_headers).status_code == 404
    assert len(client.get("/api/slots").get_json()["slots"]) == 1
