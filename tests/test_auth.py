"""Authentication, user management and audit log endpoints."""

from examtrack.models import AuditAction, AuditLog, User

from tests.conftest import API, PASSWORD, auth_headers


def login(client, username, password=PASSWORD):
    return client.post(f"{API}/auth/login", json={"username": username, "password": password})


# ==========================================
# Authentication
# ==========================================

def test_login_returns_tokens(client, db, teacher):
    response = login(client, "teacher")

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["expires_in"] > 0

    me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "teacher"
    assert me.json()["role"] == "teacher"

    db.expire_all()
    assert db.get(User, teacher.id).last_login_at is not None
    assert db.query(AuditLog).filter(AuditLog.action == AuditAction.USER_LOGIN).count() == 1


def test_login_failures(client, db, student):
    wrong = login(client, "student", "not-the-password")
    assert wrong.status_code == 401
    assert wrong.json()["error"]["code"] == "AUTH_FAILED"

    assert login(client, "nobody").status_code == 401

    student.is_active = False
    db.commit()
    assert login(client, "student").status_code == 401


def test_refresh_token_issues_new_pair(client, teacher):
    tokens = login(client, "teacher").json()

    refreshed = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    assert client.get(
        f"{API}/auth/me", headers={"Authorization": f"Bearer {refreshed.json()['access_token']}"},
    ).status_code == 200

    # An access token is not a refresh token
    misuse = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert misuse.status_code == 401


def test_change_password(client, teacher):
    headers = auth_headers(teacher)

    wrong = client.post(
        f"{API}/auth/change-password",
        json={"current_password": "wrong-password", "new_password": "brand-new-pass"},
        headers=headers,
    )
    assert wrong.status_code == 401

    ok = client.post(
        f"{API}/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "brand-new-pass"},
        headers=headers,
    )
    assert ok.status_code == 200
    assert login(client, "teacher", "brand-new-pass").status_code == 200
    assert login(client, "teacher").status_code == 401


def test_deactivated_user_token_is_rejected(client, db, teacher):
    headers = auth_headers(teacher)
    teacher.is_active = False
    db.commit()

    assert client.get(f"{API}/auth/me", headers=headers).status_code == 401


# ==========================================
# User management
# ==========================================

def test_admin_creates_users(client, admin):
    response = client.post(
        f"{API}/users",
        json={
            "name": "New Student",
            "username": "newstudent",
            "password": "password123",
            "role": "student",
            "student_code": "S100",
            "grade": "9",
            "section": "C",
        },
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    assert response.json()["role"] == "student"
    assert response.json()["grade"] == "9"
    assert login(client, "newstudent").status_code == 200


def test_user_creation_rules(client, admin, teacher):
    headers = auth_headers(admin)
    base = {"name": "Someone", "password": "password123"}

    no_grade = client.post(f"{API}/users", json={**base, "username": "nograde", "role": "student"}, headers=headers)
    assert no_grade.status_code == 422

    wrong_code = client.post(
        f"{API}/users",
        json={**base, "username": "coded", "role": "teacher", "student_code": "S900"},
        headers=headers,
    )
    assert wrong_code.status_code == 422

    taken = client.post(f"{API}/users", json={**base, "username": "teacher", "role": "admin"}, headers=headers)
    assert taken.status_code == 409

    code_taken = client.post(
        f"{API}/users",
        json={**base, "username": "another", "role": "teacher", "teacher_code": "T001"},
        headers=headers,
    )
    assert code_taken.status_code == 409


def test_user_management_is_admin_only(client, teacher, student):
    assert client.get(f"{API}/users", headers=auth_headers(teacher)).status_code == 403
    assert client.get(f"{API}/users", headers=auth_headers(student)).status_code == 403


def test_list_and_update_users(client, admin, teacher, student, other_student):
    headers = auth_headers(admin)

    students = client.get(f"{API}/users", params={"role": "student"}, headers=headers).json()
    assert students["total"] == 2

    found = client.get(f"{API}/users", params={"search": "S002"}, headers=headers).json()
    assert [u["id"] for u in found["items"]] == [other_student.id]

    updated = client.patch(
        f"{API}/users/{student.id}",
        json={"grade": "11", "is_active": False},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["grade"] == "11"
    assert updated.json()["is_active"] is False

    cleared = client.patch(f"{API}/users/{other_student.id}", json={"grade": None}, headers=headers)
    assert cleared.status_code == 422

    assert client.get(f"{API}/users/9999", headers=headers).status_code == 404


# ==========================================
# Audit logs
# ==========================================

def test_audit_log_records_actions(client, admin, exam, teacher):
    client.post(f"{API}/exams/{exam.id}/cancel", headers=auth_headers(teacher))

    logs = client.get(
        f"{API}/audit-logs",
        params={"action": "EXAM_CANCELLED"},
        headers=auth_headers(admin),
    ).json()

    assert logs["total"] == 1
    entry = logs["items"][0]
    assert entry["resource_type"] == "exam"
    assert entry["resource_id"] == str(exam.id)
    assert entry["user_username"] == "teacher"


def test_audit_log_is_admin_only(client, teacher):
    assert client.get(f"{API}/audit-logs", headers=auth_headers(teacher)).status_code == 403


def test_audit_actions(client, admin):
    actions = client.get(f"{API}/audit-logs/actions", headers=auth_headers(admin)).json()
    assert "RESULTS_PUBLISHED" in actions
