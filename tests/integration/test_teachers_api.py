import pytest


@pytest.fixture
def classroom(client, teacher_token, student_token, other_student_token, auth_header):
    """Two courses of the default teacher; one submission awaiting a grade."""
    teacher = auth_header(teacher_token)
    first = client.post(
        "/api/courses",
        json={"title": "Chemistry", "subject": "Science", "grade": "10"},
        headers=teacher,
    ).json()["id"]
    second = client.post(
        "/api/courses",
        json={"title": "Biology", "subject": "Science", "grade": "10"},
        headers=teacher,
    ).json()["id"]
    for course_id in (first, second):
        client.post(f"/api/courses/{course_id}/enroll", headers=auth_header(student_token))
    client.post(f"/api/courses/{first}/enroll", headers=auth_header(other_student_token))

    assignment_id = client.post(
        f"/api/courses/{first}/assignments",
        json={
            "title": "Titration",
            "description": "Lab",
            "due_date": "2030-05-01T09:00:00",
        },
        headers=teacher,
    ).json()["id"]
    submission_id = client.post(
        f"/api/assignments/{assignment_id}/submit",
        json={"content": "Results"},
        headers=auth_header(student_token),
    ).json()["submission"]["id"]
    return {
        "courses": [first, second],
        "assignment_id": assignment_id,
        "submission_id": submission_id,
    }


def test_dashboard(client, classroom, teacher_token, auth_header):
    headers = auth_header(teacher_token)
    resp = client.get("/api/teachers/dashboard", headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json() == {
        "courses_count": 2,
        "students_count": 2,
        "pending_assignments_count": 1,
    }

    client.put(
        f"/api/assignments/{classroom['assignment_id']}"
        f"/submissions/{classroom['submission_id']}/grade",
        json={"grade": 70},
        headers=headers,
    )
    dashboard = client.get("/api/teachers/dashboard", headers=headers).json()
    assert dashboard["pending_assignments_count"] == 0


def test_assignments_across_courses(client, classroom, teacher_token, auth_header):
    resp = client.get("/api/teachers/assignments", headers=auth_header(teacher_token))
    assert resp.status_code == 200
    assignments = resp.json()
    assert [a["id"] for a in assignments] == [classroom["assignment_id"]]
    assert assignments[0]["course"]["title"] == "Chemistry"
    assert len(assignments[0]["submissions"]) == 1


def test_students_are_listed_once(
    client, classroom, teacher_token, test_student, other_student, auth_header
):
    resp = client.get("/api/teachers/students", headers=auth_header(teacher_token))
    assert resp.status_code == 200
    students = {s["id"]: s for s in resp.json()}
    assert set(students) == {test_student.id, other_student.id}
    assert students[test_student.id]["course_ids"] == classroom["courses"]


def test_other_teacher_sees_nothing(client, classroom, other_teacher_token, auth_header):
    headers = auth_header(other_teacher_token)
    assert client.get("/api/teachers/students", headers=headers).json() == []
    assert client.get("/api/teachers/assignments", headers=headers).json() == []
    assert client.get("/api/teachers/dashboard", headers=headers).json() == {
        "courses_count": 0,
        "students_count": 0,
        "pending_assignments_count": 0,
    }


@pytest.mark.parametrize("path", ["dashboard", "assignments", "students"])
def test_teacher_routes_require_teacher(client, student_token, auth_header, path):
    resp = client.get(f"/api/teachers/{path}", headers=auth_header(student_token))
    assert resp.status_code == 403

    resp = client.get(f"/api/teachers/{path}")
    assert resp.status_code == 401
