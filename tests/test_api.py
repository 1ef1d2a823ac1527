from __future__ import annotations

import re

BOSS = "boss@acme.io"
WORKER = "worker@acme.io"


async def _signup(client, mailer, *, name, email, role, password="secret123", manager_email=None):
    response = await client.post("/api/otp/send", json={"email": email, "purpose": "signup"})
    assert response.status_code == 200, response.text

    body = {
        "name": name,
        "email": email,
        "password": password,
        "role": role,
        "code": mailer.last_code(email),
    }
    if manager_email:
        body["manager_email"] = manager_email
    response = await client.post("/api/auth/signup", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def test_healthcheck(client):
    response = await client.get("/")
    assert response.status_code == 200


async def test_manager_signup_and_login(client, mailer):
    created = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    assert re.fullmatch(r"MAN-\d{5}", created["user"]["employee_id"])
    assert "hashed_password" not in created["user"]

    response = await client.post("/api/auth/login", json={"email": BOSS, "password": "secret123", "role": "manager"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = await client.get("/api/auth/me", headers=_auth(token))
    assert me.status_code == 200
    assert me.json()["email"] == BOSS


async def test_login_with_wrong_role_or_password(client, mailer):
    await _signup(client, mailer, name="Boss", email=BOSS, role="manager")

    wrong_role = await client.post("/api/auth/login", json={"email": BOSS, "password": "secret123", "role": "employee"})
    wrong_password = await client.post("/api/auth/login", json={"email": BOSS, "password": "nope123", "role": "manager"})
    assert wrong_role.status_code == wrong_password.status_code == 401


async def test_signup_requires_a_valid_code(client, mailer):
    await client.post("/api/otp/send", json={"email": BOSS, "purpose": "signup"})
    code = mailer.last_code(BOSS)
    wrong = f"{(int(code) + 1) % 1_000_000:06d}"

    response = await client.post(
        "/api/auth/signup",
        json={"name": "Boss", "email": BOSS, "password": "secret123", "role": "manager", "code": wrong},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired verification code."


async def test_employee_signup_needs_existing_manager(client, mailer):
    response = await client.post(
        "/api/auth/signup",
        json={"name": "W", "email": WORKER, "password": "secret123", "role": "employee", "code": "123456"},
    )
    assert response.status_code == 422

    response = await client.post(
        "/api/auth/signup",
        json={
            "name": "W",
            "email": WORKER,
            "password": "secret123",
            "role": "employee",
            "code": "123456",
            "manager_email": "ghost@acme.io",
        },
    )
    assert response.status_code == 400


async def test_employee_signup_links_to_manager(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    worker = await _signup(client, mailer, name="Worker", email=WORKER, role="employee", manager_email=BOSS)

    assert re.fullmatch(r"EMP-\d{5}", worker["user"]["employee_id"])
    assert worker["user"]["manager_id"] == boss["user"]["id"]


async def test_send_otp_rules(client, mailer):
    await _signup(client, mailer, name="Boss", email=BOSS, role="manager")

    registered = await client.post("/api/otp/send", json={"email": BOSS, "purpose": "signup"})
    assert registered.status_code == 400

    unknown = await client.post("/api/otp/send", json={"email": "ghost@acme.io", "purpose": "password_reset"})
    assert unknown.status_code == 404

    bad_purpose = await client.post("/api/otp/send", json={"email": WORKER, "purpose": "login"})
    assert bad_purpose.status_code == 422

    bad_email = await client.post("/api/otp/send", json={"email": "not-an-email", "purpose": "signup"})
    assert bad_email.status_code == 422


async def test_resend_cooldown(client, mailer):
    first = await client.post("/api/otp/send", json={"email": WORKER, "purpose": "signup"})
    second = await client.post("/api/otp/send", json={"email": WORKER, "purpose": "signup"})

    assert first.status_code == 200
    assert second.status_code == 429
    assert 0 < int(second.headers["Retry-After"]) <= 60
    assert "seconds" in second.json()["detail"]
    assert len(mailer.sent) == 1


async def test_verify_and_cancel_endpoints(client, mailer):
    await client.post("/api/otp/send", json={"email": WORKER, "purpose": "signup"})
    code = mailer.last_code(WORKER)
    wrong = f"{(int(code) + 1) % 1_000_000:06d}"

    mismatch = await client.post("/api/otp/verify", json={"email": WORKER, "code": wrong})
    missing = await client.post("/api/otp/verify", json={"email": "ghost@acme.io", "code": code})
    assert mismatch.status_code == missing.status_code == 400
    assert mismatch.json() == missing.json()

    ok = await client.post("/api/otp/verify", json={"email": WORKER, "code": code})
    assert ok.status_code == 200
    assert ok.json()["purpose"] == "signup"

    await client.post("/api/otp/send", json={"email": "other@acme.io", "purpose": "signup"})
    cancelled = await client.post("/api/otp/cancel", json={"email": "other@acme.io"})
    assert cancelled.status_code == 200
    again = await client.post("/api/otp/send", json={"email": "other@acme.io", "purpose": "signup"})
    assert again.status_code == 200


async def test_delivery_failure_is_reported(client, mailer):
    mailer.fail = True
    response = await client.post("/api/otp/send", json={"email": WORKER, "purpose": "signup"})
    assert response.status_code == 502


async def test_password_reset_flow(client, mailer):
    await _signup(client, mailer, name="Boss", email=BOSS, role="manager")

    await client.post("/api/otp/send", json={"email": BOSS, "purpose": "password_reset"})
    response = await client.post(
        "/api/auth/reset-password",
        json={"email": BOSS, "code": mailer.last_code(BOSS), "new_password": "brand-new"},
    )
    assert response.status_code == 200

    old = await client.post("/api/auth/login", json={"email": BOSS, "password": "secret123", "role": "manager"})
    new = await client.post("/api/auth/login", json={"email": BOSS, "password": "brand-new", "role": "manager"})
    assert old.status_code == 401
    assert new.status_code == 200


async def test_manager_adds_employee_with_emailed_password(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    headers = _auth(boss["access_token"])

    response = await client.post(
        "/api/employees", json={"name": "Worker", "email": WORKER, "position": "Engineer"}, headers=headers
    )
    assert response.status_code == 201
    body = response.json()
    assert re.fullmatch(r"EMP-\d{5}", body["employee_id"])
    assert "password" not in str(body).lower()

    temporary = mailer.last_password(WORKER)
    login = await client.post("/api/auth/login", json={"email": WORKER, "password": temporary, "role": "employee"})
    assert login.status_code == 200

    roster = await client.get("/api/employees", headers=headers)
    assert [e["email"] for e in roster.json()] == [WORKER]


async def test_add_employee_delivery_failure_keeps_account(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    headers = _auth(boss["access_token"])

    mailer.fail = True
    response = await client.post("/api/employees", json={"name": "Worker", "email": WORKER}, headers=headers)
    assert response.status_code == 502

    roster = await client.get("/api/employees", headers=headers)
    assert [e["email"] for e in roster.json()] == [WORKER]


async def test_rosters_are_scoped_per_manager(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    rival = await _signup(client, mailer, name="Rival", email="rival@acme.io", role="manager")

    created = await client.post(
        "/api/employees", json={"name": "Worker", "email": WORKER}, headers=_auth(boss["access_token"])
    )
    employee_id = created.json()["id"]

    assert (await client.get("/api/employees", headers=_auth(rival["access_token"]))).json() == []
    denied = await client.delete(f"/api/employees/{employee_id}", headers=_auth(rival["access_token"]))
    assert denied.status_code == 404

    deleted = await client.delete(f"/api/employees/{employee_id}", headers=_auth(boss["access_token"]))
    assert deleted.status_code == 200
    assert (await client.get("/api/employees", headers=_auth(boss["access_token"]))).json() == []


async def test_employee_cannot_use_manager_endpoints(client, mailer):
    await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    worker = await _signup(client, mailer, name="Worker", email=WORKER, role="employee", manager_email=BOSS)

    response = await client.get("/api/employees", headers=_auth(worker["access_token"]))
    assert response.status_code == 403


async def test_requests_without_token_are_rejected(client):
    response = await client.get("/api/auth/me")
    assert response.status_code == 401

    response = await client.get("/api/auth/me", headers=_auth("garbage"))
    assert response.status_code == 401


async def test_leave_approval_flow(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    worker = await _signup(client, mailer, name="Worker", email=WORKER, role="employee", manager_email=BOSS)
    boss_headers = _auth(boss["access_token"])
    worker_headers = _auth(worker["access_token"])

    created = await client.post(
        "/api/leaves",
        json={"leave_type": "sick", "from_date": "2026-03-02", "to_date": "2026-03-06", "reason": "flu"},
        headers=worker_headers,
    )
    assert created.status_code == 201
    leave_id = created.json()["id"]

    stats = await client.get("/api/employees/stats", headers=boss_headers)
    assert stats.json() == {"total_employees": 1, "pending_leaves": 1}

    team = await client.get("/api/leaves", headers=boss_headers)
    assert [leave["id"] for leave in team.json()] == [leave_id]

    decided = await client.put(f"/api/leaves/{leave_id}", json={"status": "approved"}, headers=boss_headers)
    assert decided.status_code == 200
    assert decided.json()["status"] == "approved"

    me = await client.get("/api/auth/me", headers=worker_headers)
    assert me.json()["leaves_left"] == 15

    again = await client.put(f"/api/leaves/{leave_id}", json={"status": "rejected"}, headers=boss_headers)
    assert again.status_code == 400

    mine = await client.get("/api/leaves/stats", headers=worker_headers)
    assert mine.json() == {"total_requests": 1, "approved": 1, "pending": 0, "rejected": 0}


async def test_leave_with_reversed_dates_is_rejected(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    response = await client.post(
        "/api/leaves",
        json={"from_date": "2026-03-06", "to_date": "2026-03-02"},
        headers=_auth(boss["access_token"]),
    )
    assert response.status_code == 422


async def test_signup_with_verification_token(client, mailer):
    await client.post("/api/otp/send", json={"email": BOSS, "purpose": "signup"})
    verified = await client.post("/api/otp/verify", json={"email": BOSS, "code": mailer.last_code(BOSS)})
    assert verified.status_code == 200
    token = verified.json()["verification_token"]

    body = {"name": "Boss", "email": BOSS, "password": "secret123", "role": "manager", "verification_token": token}
    created = await client.post("/api/auth/signup", json=body)
    assert created.status_code == 201, created.text

    missing = await client.post(
        "/api/auth/signup",
        json={"name": "W", "email": WORKER, "password": "secret123", "role": "manager"},
    )
    assert missing.status_code == 422


async def test_reset_password_token_is_single_use(client, mailer):
    await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    await client.post("/api/otp/send", json={"email": BOSS, "purpose": "password_reset"})
    verified = await client.post("/api/otp/verify", json={"email": BOSS, "code": mailer.last_code(BOSS)})
    token = verified.json()["verification_token"]

    body = {"email": BOSS, "verification_token": token, "new_password": "brand-new"}
    first = await client.post("/api/auth/reset-password", json=body)
    second = await client.post("/api/auth/reset-password", json={**body, "new_password": "hijacked"})
    assert first.status_code == 200
    assert second.status_code == 400

    login = await client.post("/api/auth/login", json={"email": BOSS, "password": "brand-new", "role": "manager"})
    assert login.status_code == 200


async def test_signup_token_cannot_reset_password(client, mailer):
    await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    await client.post("/api/otp/send", json={"email": WORKER, "purpose": "signup"})
    verified = await client.post("/api/otp/verify", json={"email": WORKER, "code": mailer.last_code(WORKER)})

    response = await client.post(
        "/api/auth/reset-password",
        json={"email": BOSS, "verification_token": verified.json()["verification_token"], "new_password": "brand-new"},
    )
    assert response.status_code == 400


async def test_manager_terminates_employee(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    worker = await _signup(client, mailer, name="Worker", email=WORKER, role="employee", manager_email=BOSS)
    boss_headers = _auth(boss["access_token"])

    updated = await client.put(
        f"/api/employees/{worker['user']['id']}",
        json={"position": "Engineer", "status": "terminated"},
        headers=boss_headers,
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["status"] == "terminated"
    assert updated.json()["position"] == "Engineer"

    login = await client.post("/api/auth/login", json={"email": WORKER, "password": "secret123", "role": "employee"})
    assert login.status_code == 403

    me = await client.get("/api/auth/me", headers=_auth(worker["access_token"]))
    assert me.status_code == 401


async def test_employee_update_is_scoped_and_validated(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    rival = await _signup(client, mailer, name="Rival", email="rival@acme.io", role="manager")
    worker = await _signup(client, mailer, name="Worker", email=WORKER, role="employee", manager_email=BOSS)
    url = f"/api/employees/{worker['user']['id']}"

    denied = await client.put(url, json={"salary": 1}, headers=_auth(rival["access_token"]))
    assert denied.status_code == 404

    taken = await client.put(url, json={"email": "rival@acme.io"}, headers=_auth(boss["access_token"]))
    assert taken.status_code == 400

    negative = await client.put(url, json={"salary": -5}, headers=_auth(boss["access_token"]))
    assert negative.status_code == 422

    by_employee = await client.put(url, json={"salary": 99999}, headers=_auth(worker["access_token"]))
    assert by_employee.status_code == 403


async def test_update_own_profile(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    headers = _auth(boss["access_token"])

    updated = await client.put(
        "/api/auth/me", json={"name": "  Big Boss ", "phone": "+1 555 0100", "address": "1 Main St"}, headers=headers
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["name"] == "Big Boss"
    assert updated.json()["phone"] == "+1 555 0100"

    email = await client.put("/api/auth/me", json={"email": "new@acme.io"}, headers=headers)
    assert email.status_code == 400

    balance = await client.put("/api/auth/me", json={"leaves_left": 99}, headers=headers)
    assert balance.status_code == 422

    me = await client.get("/api/auth/me", headers=headers)
    assert me.json()["email"] == BOSS
    assert me.json()["leaves_left"] == 20


async def test_task_endpoints(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    worker = await _signup(client, mailer, name="Worker", email=WORKER, role="employee", manager_email=BOSS)
    boss_headers = _auth(boss["access_token"])
    worker_headers = _auth(worker["access_token"])

    created = await client.post(
        "/api/tasks",
        json={
            "title": "Audit",
            "description": "Check Q1",
            "deadline": "2026-05-01",
            "assigned_to_id": worker["user"]["id"],
        },
        headers=boss_headers,
    )
    assert created.status_code == 201, created.text
    task_id = created.json()["id"]

    forbidden = await client.post(
        "/api/tasks",
        json={"title": "X", "description": "Y", "deadline": "2026-05-01", "assigned_to_id": boss["user"]["id"]},
        headers=worker_headers,
    )
    assert forbidden.status_code == 403

    early = await client.put(f"/api/tasks/{task_id}/status", json={"status": "completed"}, headers=worker_headers)
    assert early.status_code == 400

    assert (await client.put(f"/api/tasks/{task_id}/accept", headers=worker_headers)).status_code == 200
    done = await client.put(f"/api/tasks/{task_id}/status", json={"status": "completed"}, headers=worker_headers)
    assert done.json()["status"] == "completed"

    mine = await client.get("/api/tasks/my-tasks", headers=worker_headers)
    assert [t["id"] for t in mine.json()] == [task_id]
    stats = await client.get("/api/tasks/stats", headers=worker_headers)
    assert stats.json() == {"total_tasks": 1, "completed_tasks": 1, "in_progress_tasks": 0}


async def test_attendance_endpoints(client, mailer):
    boss = await _signup(client, mailer, name="Boss", email=BOSS, role="manager")
    worker = await _signup(client, mailer, name="Worker", email=WORKER, role="employee", manager_email=BOSS)
    boss_headers = _auth(boss["access_token"])
    worker_id = worker["user"]["id"]

    leave = await client.post(
        "/api/leaves",
        json={"from_date": "2026-03-03", "to_date": "2026-03-03"},
        headers=_auth(worker["access_token"]),
    )
    await client.put(f"/api/leaves/{leave.json()['id']}", json={"status": "approved"}, headers=boss_headers)

    present = await client.post(
        "/api/attendance/mark",
        json={"user_id": worker_id, "work_date": "2026-03-02", "status": "present"},
        headers=boss_headers,
    )
    assert present.status_code == 200, present.text
    assert present.json()["message"] is None
    assert present.json()["attendance"]["time_in"] == "09:00"

    on_leave = await client.post(
        "/api/attendance/mark",
        json={"user_id": worker_id, "work_date": "2026-03-03", "status": "absent"},
        headers=boss_headers,
    )
    assert on_leave.json()["attendance"]["status"] == "leave"
    assert on_leave.json()["message"]

    records = await client.get("/api/attendance/records", headers=_auth(worker["access_token"]))
    assert [r["work_date"] for r in records.json()] == ["2026-03-03", "2026-03-02"]

    summary = await client.get(f"/api/attendance/summary/{worker_id}?year=2026&month=3", headers=boss_headers)
    assert summary.json() == {"present": 1, "absent": 0, "leave": 1, "total": 2, "attendance_rate": 50.0}

    bad_month = await client.get(f"/api/attendance/summary/{worker_id}?year=2026&month=13", headers=boss_headers)
    assert bad_month.status_code == 422

    by_employee = await client.post(
        "/api/attendance/mark",
        json={"user_id": worker_id, "work_date": "2026-03-04", "status": "present"},
        headers=_auth(worker["access_token"]),
    )
    assert by_employee.status_code == 403
