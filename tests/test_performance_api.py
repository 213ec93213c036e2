"""Performance and dashboard endpoints."""

from datetime import datetime, timedelta, timezone

from examtrack.models import ExamStatus, UserRole

from tests.conftest import API, auth_headers, make_exam, make_result, make_user


def test_student_performance_is_weighted(client, db, teacher, student, past_exam):
    quiz = make_exam(
        db, teacher,
        title="Algebra Quiz",
        date=datetime.now(timezone.utc) - timedelta(days=1),
        total_marks=50,
        passing_marks=20,
    )
    make_result(db, past_exam, student, 90)
    make_result(db, quiz, student, 10)

    response = client.get(f"{API}/performance/student/{student.id}", headers=auth_headers(student))

    assert response.status_code == 200
    body = response.json()
    assert body["overview"]["total_exams"] == 2
    assert body["overview"]["average_percentage"] == 67
    assert body["overview"]["pass_rate"] == 50
    assert {s["subject"] for s in body["subject_performance"]} == {"Physics", "Mathematics"}
    assert [r["exam_title"] for r in body["recent_results"]] == ["Algebra Quiz", "Physics Final"]


def test_student_performance_without_results(client, student):
    body = client.get(f"{API}/performance/student/{student.id}", headers=auth_headers(student)).json()
    assert body["overview"]["total_exams"] == 0
    assert body["performance_trend"] == []


def test_student_performance_visibility(client, teacher, student, other_student):
    url = f"{API}/performance/student/{other_student.id}"
    assert client.get(url, headers=auth_headers(student)).status_code == 403
    assert client.get(url, headers=auth_headers(teacher)).status_code == 200
    assert client.get(
        f"{API}/performance/student/{teacher.id}", headers=auth_headers(teacher),
    ).status_code == 404


def test_exam_performance(client, db, past_exam, teacher, other_teacher, student, other_student):
    make_result(db, past_exam, student, 55)
    make_result(db, past_exam, other_student, 98)

    response = client.get(f"{API}/performance/exam/{past_exam.id}", headers=auth_headers(teacher))

    assert response.status_code == 200
    body = response.json()
    assert body["exam_info"]["title"] == "Physics Final"
    assert body["overview"]["total_students"] == 2
    assert body["overview"]["average_percentage"] == 77
    assert body["overview"]["pass_rate"] == 50
    assert [b["grade"] for b in body["grade_distribution"]] == ["A+", "F"]
    assert body["top_performers"][0]["student_id"] == other_student.id
    assert body["bottom_performers"][0]["student_id"] == student.id

    url = f"{API}/performance/exam/{past_exam.id}"
    assert client.get(url, headers=auth_headers(other_teacher)).status_code == 403
    assert client.get(url, headers=auth_headers(student)).status_code == 403


def test_teacher_performance_is_admin_only(client, db, admin, teacher, past_exam, exam, student):
    make_result(db, past_exam, student, 75)

    assert client.get(
        f"{API}/performance/teacher/{teacher.id}", headers=auth_headers(teacher),
    ).status_code == 403

    response = client.get(f"{API}/performance/teacher/{teacher.id}", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["overview"]["total_exams"] == 2
    assert body["overview"]["total_students"] == 1
    assert body["overview"]["average_class_performance"] == 75
    assert [e["exam_id"] for e in body["exam_performance"]] == [past_exam.id]


def test_teacher_performance_period(client, db, admin, teacher, student):
    old = make_exam(db, teacher, title="Last Year", date=datetime.now(timezone.utc) - timedelta(days=500))
    make_result(db, old, student, 40)

    everything = client.get(
        f"{API}/performance/teacher/{teacher.id}", headers=auth_headers(admin),
    ).json()
    this_year = client.get(
        f"{API}/performance/teacher/{teacher.id}",
        params={"period": "year"},
        headers=auth_headers(admin),
    ).json()

    assert everything["overview"]["total_results"] == 1
    assert this_year["overview"]["total_results"] == 0


def test_unknown_teacher_is_not_found(client, admin, student):
    response = client.get(f"{API}/performance/teacher/{student.id}", headers=auth_headers(admin))
    assert response.status_code == 404


# ==========================================
# Dashboard
# ==========================================

def test_admin_dashboard(client, db, admin, teacher, other_teacher, student, other_student, exam, past_exam):
    make_user(db, "inactive", UserRole.STUDENT, is_active=False)
    make_result(db, past_exam, student, 80)

    body = client.get(f"{API}/performance/dashboard", headers=auth_headers(admin)).json()

    assert body["role"] == "admin"
    stats = body["stats"]
    assert stats["total_students"] == 2
    assert stats["total_teachers"] == 2
    assert stats["total_exams"] == 2
    assert stats["total_results"] == 1
    assert stats["monthly_exams"] == 2
    assert stats["monthly_results"] == 1


def test_teacher_dashboard(client, db, teacher, other_teacher, student, other_student, past_exam):
    make_exam(db, other_teacher, title="Not Mine")
    make_result(db, past_exam, student, 80)
    make_result(db, past_exam, other_student, 61)

    body = client.get(f"{API}/performance/dashboard", headers=auth_headers(teacher)).json()

    assert body["role"] == "teacher"
    assert body["stats"]["total_exams"] == 1
    assert body["stats"]["total_results"] == 2
    assert body["stats"]["average_performance"] == 71


def test_student_dashboard(client, db, teacher, student, exam, past_exam):
    make_exam(db, teacher, title="Cancelled", status=ExamStatus.CANCELLED)
    make_exam(db, teacher, title="Grade 12 only", target_grades=["12"])
    make_result(db, past_exam, student, 70)

    body = client.get(f"{API}/performance/dashboard", headers=auth_headers(student)).json()

    assert body["role"] == "student"
    assert body["stats"]["total_exams"] == 3
    assert body["stats"]["upcoming_exams"] == 1
    assert body["stats"]["total_results"] == 1
    assert body["stats"]["average_performance"] == 70
