from conftest import utc
from models import Invite, db
from security.csrf import CSRF_COOKIE, CSRF_HEADER


def _invite_member(client, admin_headers, email="sam@example.com", credits=2):
    resp = client.post(
        "/api/admin/members",
        json={"email": email, "name": "Sam", "credits": credits},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    return resp.get_json()


def _activate(client, token, password="correct-horse"):
    return client.post("/api/auth/set-password", json={"token": token, "password": password})


def _csrf(client):
    return {CSRF_HEADER: client.get_cookie(CSRF_COOKIE).value}


def test_invite_activation_and_login(client, admin_headers, notifier):
    created = _invite_member(client, admin_headers)
    token = created["invite"]
    assert notifier.names() == ["invite"]

    check = client.get(f"/api/auth/check-invite?token={token}")
    assert check.status_code == 200
    assert check.get_json()["email"] == "sam@example.com"

    assert _activate(client, token, "short").get_json() == {"error": "WEAK_PASSWORD"}
    assert _activate(client, token).status_code == 200
    # invites are single use
    assert _activate(client, token).get_json() == {"error": "INVALID_OR_EXPIRED"}

    bad = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "nope-nope"})
    assert bad.status_code == 401
    assert bad.get_json() == {"error": "INVALID_LOGIN"}

    ok = client.post("/api/auth/login", json={"email": "SAM@example.com", "password": "correct-horse"})
    assert ok.status_code == 200

    me = client.get("/api/me")
    assert me.status_code == 200
    assert me.get_json()["member"]["credits"] == 2
    assert me.get_json()["member"]["activated"] is True

    client.post("/api/auth/logout", headers=_csrf(client))
    assert client.get("/api/me").status_code == 401
    assert client.get_cookie(CSRF_COOKIE) is None


def test_expired_invite_is_rejected(client, admin_headers):
    token = _invite_member(client, admin_headers)["invite"]
    invite = Invite.query.one()
    invite.expires_at = utc(2000, 1, 1)
    db.session.commit()

    resp = client.get(f"/api/auth/check-invite?token={token}")

    assert resp.status_code == 400
    assert resp.get_json() == {"error": "INVALID_OR_EXPIRED"}


def test_member_without_password_cannot_log_in(client, make_member):
    make_member()
    resp = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "whatever1"})
    assert resp.status_code == 401


def test_member_lists_and_cancels_own_bookings(client, admin_headers, services, make_slot):
    token = _invite_member(client, admin_headers, credits=2)["invite"]
    _activate(client, token)
    client.post("/api/auth/login", json={"email": "sam@example.com", "password": "correct-horse"})
    slot = make_slot(utc(2026, 10, 22, 16))
    booking_id = client.post(
        "/api/book", json={"slot_id": slot.id, "email": "sam@example.com"}, headers=_csrf(client)
    ).get_json()["booking_id"]

    listed = client.get("/api/member/bookings").get_json()["bookings"]
    assert [b["booking_id"] for b in listed] == [booking_id]

    resp = client.post(f"/api/member/bookings/{booking_id}/cancel", headers=_csrf(client))
    assert resp.status_code == 200
    assert resp.get_json() == {"refunded": True}

    again = client.post(f"/api/member/bookings/{booking_id}/cancel", headers=_csrf(client))
    assert again.status_code == 409
    assert again.get_json() == {"error": "ALREADY_CANCELLED"}


def test_cookie_session_writes_need_csrf_token(client, admin_headers, services, make_slot):
    token = _invite_member(client, admin_headers, credits=2)["invite"]
    _activate(client, token)
    login = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "correct-horse"})
    assert login.status_code == 200
    slot = make_slot(utc(2026, 10, 22, 16))
    receipt = services.booking.book(slot.id, "sam@example.com")

    missing = client.post(f"/api/member/bookings/{receipt.booking_id}/cancel")
    assert missing.status_code == 403
    assert missing.get_json() == {"error": "CSRF_FAILED"}

    forged = client.post(
        f"/api/member/bookings/{receipt.booking_id}/cancel",
        headers={CSRF_HEADER: "not-the-cookie-value"},
    )
    assert forged.status_code == 403
    assert services.store.get_booking(receipt.booking_id).cancelled_at is None

    # reads are not checked
    assert client.get("/api/member/bookings").status_code == 200

    ok = client.post(f"/api/member/bookings/{receipt.booking_id}/cancel", headers=_csrf(client))
    assert ok.status_code == 200


def test_anonymous_booking_needs_no_csrf_token(client, make_member, make_slot):
    make_member()
    slot = make_slot(utc(2026, 10, 22, 16))
    resp = client.post("/api/book", json={"slot_id": slot.id, "email": "sam@example.com"})
    assert resp.status_code == 201


def test_login_rejects_non_string_fields(client):
    resp = client.post("/api/auth/login", json={"email": 12345, "password": ["x"]})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "MISSING_FIELDS"}
