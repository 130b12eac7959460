from conftest import utc
from models import AuditLog


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_book_over_http(client, services, make_member, make_slot):
    make_member(credits=2)
    slot = make_slot(utc(2026, 10, 20, 16))

    resp = client.post("/api/book", json={"slot_id": slot.id, "email": "sam@example.com", "notes": "backhand"})

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["credits"] == 1
    assert services.store.get_booking(body["booking_id"]).notes == "backhand"
    assert AuditLog.query.filter_by(action="BOOKING_CREATE").count() == 1


def test_book_errors_map_to_status_codes(client, make_member, make_slot):
    make_member(credits=0)
    slot = make_slot(utc(2026, 10, 20, 16))

    cases = [
        ({}, 400, "MISSING_FIELDS"),
        ({"slot_id": slot.id, "email": 12345}, 400, "MISSING_FIELDS"),
        ({"slot_id": 999, "email": "sam@example.com"}, 404, "SLOT_NOT_FOUND"),
        ({"slot_id": slot.id, "email": "nobody@example.com"}, 403, "NOT_MEMBER"),
        ({"slot_id": slot.id, "email": "sam@example.com"}, 402, "NO_CREDITS"),
    ]
    for payload, status, code in cases:
        resp = client.post("/api/book", json=payload)
        assert resp.status_code == status, payload
        assert resp.get_json() == {"error": code}

    assert AuditLog.query.filter_by(action="BOOKING_FAIL").count() == len(cases)


def test_double_booking_returns_conflict(client, make_member, make_slot):
    make_member(credits=2)
    make_member(email="alex@example.com", name="Alex")
    slot = make_slot(utc(2026, 10, 20, 16))

    first = client.post("/api/book", json={"slot_id": slot.id, "email": "sam@example.com"})
    second = client.post("/api/book", json={"slot_id": slot.id, "email": "alex@example.com"})

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.get_json() == {"error": "SLOT_ALREADY_BOOKED"}


def test_list_slots_by_local_day(client, make_slot):
    make_slot(utc(2026, 10, 20, 16))
    make_slot(utc(2026, 10, 21, 17))
    make_slot(utc(2026, 10, 22, 16))

    resp = client.get("/api/slots?from=2026-10-21&to=2026-10-21")

    assert resp.status_code == 200
    assert [s["start_time"] for s in resp.get_json()["slots"]] == ["2026-10-21T17:00:00Z"]


def test_list_slots_only_available(client, make_member, make_slot):
    make_member()
    booked = make_slot(utc(2026, 10, 20, 16))
    make_slot(utc(2026, 10, 21, 17))
    client.post("/api/book", json={"slot_id": booked.id, "email": "sam@example.com"})

    resp = client.get("/api/slots?onlyAvailable=true")

    assert len(resp.get_json()["slots"]) == 1


def test_list_slots_rejects_bad_day(client):
    resp = client.get("/api/slots?from=20-10-2026")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "INVALID_DAY"}


def test_member_routes_need_login(client):
    assert client.get("/api/member/bookings").status_code == 401
    assert client.post("/api/member/bookings/1/cancel").status_code == 401
