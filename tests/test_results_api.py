"""Result endpoints: recording, grading, bulk entry and visibility."""

from datetime import datetime, timedelta, timezone

from examtrack.models import ExamStatus, Result, UserRole
from examtrack.services.result import ResultService

from tests.conftest import API, auth_headers, make_exam, make_result, make_user


def post_result(client, user, exam, student, marks, **extra):
    payload = {"student_id": student.id, "exam_id": exam.id, "marks_obtained": marks}
    payload.update(extra)
    return client.post(f"{API}/results", json=payload, headers=auth_headers(user))


# ==========================================
# Create
# ==========================================

def test_result_is_graded_on_the_server(client, past_exam, teacher, student):
    response = post_result(
        client, teacher, past_exam, student, 65,
        percentage=99, grade="A+", status="fail",
        breakdown={"theory": {"marks": 40, "total": 60}, "practical": {"marks": 25, "total": 40}},
        teacher_comments="Solid effort",
    )

    assert response.status_code == 201
    body = response.json()
    assert body["percentage"] == 65
    assert body["grade"] == "D"
    assert body["status"] == "pass"
    assert body["grade_point"] == 1.0
    assert body["performance_level"] == "Satisfactory"
    assert body["performance_color"] == "orange"
    assert body["student_name"] == "Sarah Student"
    assert body["exam_title"] == "Physics Final"
    assert body["graded_by_id"] == teacher.id
    assert body["graded_by_name"] == "John Teacher"
    assert body["breakdown"] is not None
    assert body["teacher_comments"] == "Solid effort"


def test_below_sixty_percent_fails(client, past_exam, teacher, student):
    body = post_result(client, teacher, past_exam, student, 55).json()
    assert body["grade"] == "F"
    assert body["status"] == "fail"


def test_pass_status_ignores_exam_passing_marks(client, db, teacher, student):
    strict = make_exam(
        db, teacher,
        date=datetime.now(timezone.utc) - timedelta(days=1),
        passing_marks=70,
    )
    body = post_result(client, teacher, strict, student, 65).json()
    assert body["status"] == "pass"


def test_fractional_marks_round_half_up(client, db, teacher, student):
    exam = make_exam(db, teacher, date=datetime.now(timezone.utc) - timedelta(days=1), total_marks=200)
    body = post_result(client, teacher, exam, student, 179).json()
    assert body["percentage"] == 90
    assert body["grade"] == "A-"


def test_marks_above_total_are_rejected(client, db, past_exam, teacher, student):
    response = post_result(client, teacher, past_exam, student, 101)

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert db.query(Result).count() == 0


def test_negative_marks_are_rejected(client, past_exam, teacher, student):
    assert post_result(client, teacher, past_exam, student, -1).status_code == 422


def test_duplicate_result_conflicts(client, db, past_exam, teacher, student):
    assert post_result(client, teacher, past_exam, student, 70).status_code == 201

    response = post_result(client, teacher, past_exam, student, 80)

    assert response.status_code == 409
    db.expire_all()
    assert db.query(Result).count() == 1


def test_only_the_owning_teacher_records_results(client, past_exam, other_teacher, admin, student):
    assert post_result(client, other_teacher, past_exam, student, 70).status_code == 403
    assert post_result(client, student, past_exam, student, 70).status_code == 403
    assert post_result(client, admin, past_exam, student, 70).status_code == 201


def test_result_requires_a_student(client, past_exam, teacher, other_teacher):
    response = post_result(client, teacher, past_exam, other_teacher, 70)
    assert response.status_code == 404


def test_unknown_exam_is_not_found(client, teacher, student):
    response = client.post(
        f"{API}/results",
        json={"student_id": student.id, "exam_id": 9999, "marks_obtained": 50},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_cancelled_exam_accepts_no_results(client, db, teacher, student):
    cancelled = make_exam(db, teacher, status=ExamStatus.CANCELLED)
    assert post_result(client, teacher, cancelled, student, 70).status_code == 422


# ==========================================
# Bulk
# ==========================================

def test_bulk_create_collects_per_entry_errors(client, db, past_exam, teacher, student, other_student):
    third = make_user(db, "student3", UserRole.STUDENT, student_code="S003", grade="10")
    make_result(db, past_exam, third, 50)

    response = client.post(
        f"{API}/results/bulk",
        json={
            "exam_id": past_exam.id,
            "results": [
                {"student_id": student.id, "marks_obtained": 80},
                {"student_id": other_student.id, "marks_obtained": 120},
                {"student_id": student.id, "marks_obtained": 70},
                {"student_id": third.id, "marks_obtained": 60},
                {"student_id": teacher.id, "marks_obtained": 60},
            ],
        },
        headers=auth_headers(teacher),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["total_records"] == 5
    assert body["created"] == 1
    assert body["failed"] == 4
    assert [e["student_id"] for e in body["errors"]] == [other_student.id, student.id, third.id, teacher.id]
    assert "exceeds total marks" in body["errors"][0]["message"]

    db.expire_all()
    stored = db.query(Result).filter(Result.student_id == student.id).one()
    assert stored.grade == "B-"
    assert db.query(Result).count() == 2


def test_bulk_create_accepts_a_later_valid_entry_for_the_same_student(client, db, past_exam, teacher, student):
    response = client.post(
        f"{API}/results/bulk",
        json={
            "exam_id": past_exam.id,
            "results": [
                {"student_id": student.id, "marks_obtained": 120},
                {"student_id": student.id, "marks_obtained": 80},
            ],
        },
        headers=auth_headers(teacher),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["created"] == 1
    assert body["failed"] == 1
    assert "exceeds total marks" in body["errors"][0]["message"]

    db.expire_all()
    stored = db.query(Result).filter(Result.student_id == student.id).one()
    assert stored.percentage == 80


def test_bulk_create_reports_unique_clash_per_entry(client, db, monkeypatch, past_exam, teacher, student, other_student):
    make_result(db, past_exam, student, 50)
    # Another writer inserted the row after the existence check ran
    monkeypatch.setattr(ResultService, "_result_exists", lambda self, student_id, exam_id: False)

    response = client.post(
        f"{API}/results/bulk",
        json={
            "exam_id": past_exam.id,
            "results": [
                {"student_id": student.id, "marks_obtained": 70},
                {"student_id": other_student.id, "marks_obtained": 90},
            ],
        },
        headers=auth_headers(teacher),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["created"] == 1
    assert body["errors"] == [
        {"student_id": student.id, "message": "Result already exists for this student and exam"},
    ]

    db.expire_all()
    assert db.query(Result).count() == 2
    assert db.query(Result).filter(Result.student_id == student.id).one().marks_obtained == 50


def test_bulk_create_on_cancelled_exam_fails_whole_request(client, db, teacher, student):
    cancelled = make_exam(db, teacher, status=ExamStatus.CANCELLED)
    response = client.post(
        f"{API}/results/bulk",
        json={"exam_id": cancelled.id, "results": [{"student_id": student.id, "marks_obtained": 80}]},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 422


def test_bulk_create_requires_entries(client, past_exam, teacher):
    response = client.post(
        f"{API}/results/bulk",
        json={"exam_id": past_exam.id, "results": []},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 422


# ==========================================
# Update / Delete
# ==========================================

def test_update_regrades(client, db, past_exam, teacher, student):
    result = make_result(db, past_exam, student, 65)

    raised = client.patch(
        f"{API}/results/{result.id}",
        json={"marks_obtained": 95, "student_remarks": "Thanks"},
        headers=auth_headers(teacher),
    )
    assert raised.status_code == 200
    assert raised.json()["percentage"] == 95
    assert raised.json()["grade"] == "A"
    assert raised.json()["student_remarks"] == "Thanks"

    rescaled = client.patch(
        f"{API}/results/{result.id}",
        json={"total_marks": 200},
        headers=auth_headers(teacher),
    )
    assert rescaled.json()["percentage"] == 48
    assert rescaled.json()["status"] == "fail"


def test_update_rejects_marks_above_total(client, db, past_exam, teacher, student):
    result = make_result(db, past_exam, student, 65)

    response = client.patch(
        f"{API}/results/{result.id}",
        json={"marks_obtained": 150},
        headers=auth_headers(teacher),
    )

    assert response.status_code == 422
    db.expire_all()
    assert db.get(Result, result.id).percentage == 65


def test_update_and_delete_are_staff_only(client, db, past_exam, student, other_teacher):
    result = make_result(db, past_exam, student, 65)

    assert client.patch(
        f"{API}/results/{result.id}", json={"marks_obtained": 100}, headers=auth_headers(student),
    ).status_code == 403
    assert client.patch(
        f"{API}/results/{result.id}", json={"marks_obtained": 100}, headers=auth_headers(other_teacher),
    ).status_code == 403
    assert client.delete(f"{API}/results/{result.id}", headers=auth_headers(student)).status_code == 403


# ==========================================
# Visibility
# ==========================================

def test_result_lists_are_scoped_by_role(client, db, past_exam, admin, teacher, other_teacher, student, other_student):
    mine = make_result(db, past_exam, student, 72)
    make_result(db, past_exam, other_student, 88)

    as_student = client.get(f"{API}/results", headers=auth_headers(student)).json()
    as_teacher = client.get(f"{API}/results", headers=auth_headers(teacher)).json()
    as_other = client.get(f"{API}/results", headers=auth_headers(other_teacher)).json()
    as_admin = client.get(f"{API}/results", headers=auth_headers(admin)).json()

    assert [r["id"] for r in as_student["items"]] == [mine.id]
    assert as_teacher["total"] == 2
    assert as_other["total"] == 0
    assert as_admin["total"] == 2


def test_exam_results_are_ordered_and_scoped(client, db, past_exam, teacher, student, other_student):
    mine = make_result(db, past_exam, student, 72)
    make_result(db, past_exam, other_student, 88)

    as_teacher = client.get(f"{API}/results/exam/{past_exam.id}", headers=auth_headers(teacher)).json()
    as_student = client.get(f"{API}/results/exam/{past_exam.id}", headers=auth_headers(student)).json()

    assert [r["student_id"] for r in as_teacher] == [other_student.id, student.id]
    assert [r["id"] for r in as_student] == [mine.id]


def test_students_cannot_read_other_results(client, db, past_exam, student, other_student):
    theirs = make_result(db, past_exam, other_student, 88)

    assert client.get(f"{API}/results/{theirs.id}", headers=auth_headers(student)).status_code == 403
    assert client.get(
        f"{API}/results/student/{other_student.id}", headers=auth_headers(student),
    ).status_code == 403
    assert client.get(
        f"{API}/results/student/{other_student.id}", headers=auth_headers(other_student),
    ).status_code == 200
