import pytest


@pytest.fixture
def course_id(client, teacher_token, student_token, auth_header):
    resp = client.post(
        "/api/courses",
        json={"title": "Physics", "subject": "Science", "grade": "11"},
        headers=auth_header(teacher_token),
    )
    course_id = resp.json()["id"]
    client.post(f"/api/courses/{course_id}/enroll", headers=auth_header(student_token))
    return course_id


@pytest.fixture
def assignment_id(client, course_id, teacher_token, auth_header):
    resp = client.post(
        f"/api/courses/{course_id}/assignments",
        json={
            "title": "Lab report",
            "description": "Pendulum experiment",
            "due_date": "2030-03-01T09:00:00Z",
        },
        headers=auth_header(teacher_token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def test_create_assignment_validation(client, course_id, teacher_token, auth_header):
    resp = client.post(
        f"/api/courses/{course_id}/assignments",
        json={"title": "No description", "due_date": "2030-03-01T09:00:00"},
        headers=auth_header(teacher_token),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"

    resp = client.post(
        f"/api/courses/{course_id}/assignments",
        json={"title": "T", "description": "D", "due_date": "not a date"},
        headers=auth_header(teacher_token),
    )
    assert resp.status_code == 400


def test_create_assignment_by_other_teacher(
    client, course_id, other_teacher_token, auth_header
):
    resp = client.post(
        f"/api/courses/{course_id}/assignments",
        json={"title": "T", "description": "D", "due_date": "2030-03-01T09:00:00"},
        headers=auth_header(other_teacher_token),
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "not_owner"


def test_create_assignment_in_missing_course(client, teacher_token, auth_header):
    resp = client.post(
        "/api/courses/999/assignments",
        json={"title": "T", "description": "D", "due_date": "2030-03-01T09:00:00"},
        headers=auth_header(teacher_token),
    )
    assert resp.status_code == 404


def test_submit_then_grade_flow(
    client, assignment_id, teacher_token, student_token, auth_header
):
    resp = client.post(
        f"/api/assignments/{assignment_id}/submit",
        json={"content": "My report", "attachments": ["report.pdf"]},
        headers=auth_header(student_token),
    )
    assert resp.status_code == 200, resp.text
    submission = resp.json()["submission"]
    assert submission["state"] == "submitted"

    resp = client.post(
        f"/api/assignments/{assignment_id}/submit",
        json={"content": "Again"},
        headers=auth_header(student_token),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "already_submitted"

    resp = client.put(
        f"/api/assignments/{assignment_id}/submissions/{submission['id']}/grade",
        json={"grade": 92, "feedback": "Clear method"},
        headers=auth_header(teacher_token),
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["submission"]["state"] == "graded"

    submissions = client.get(
        f"/api/assignments/{assignment_id}/submissions",
        headers=auth_header(teacher_token),
    ).json()
    assert len(submissions) == 1
    assert submissions[0]["grade"] == 92.0

    view = client.get(
        f"/api/assignments/{assignment_id}", headers=auth_header(student_token)
    ).json()
    assert view["my_submission"]["feedback"] == "Clear method"
    assert "submissions" not in view


def test_unenrolled_student_cannot_submit(
    client, assignment_id, other_student_token, auth_header
):
    resp = client.post(
        f"/api/assignments/{assignment_id}/submit",
        json={"content": "Hi"},
        headers=auth_header(other_student_token),
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "not_enrolled"


def test_submit_to_missing_assignment(client, student_token, auth_header, db_service):
    resp = client.post(
        "/api/assignments/555/submit",
        json={"content": "Hi"},
        headers=auth_header(student_token),
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "assignment_not_found"


def test_unauthenticated_grade_fails_before_ownership(client, assignment_id):
    resp = client.put(
        f"/api/assignments/{assignment_id}/submissions/1/grade",
        json={"grade": 50},
    )
    assert resp.status_code == 401
    assert resp.json()["code"] == "no_credential"


def test_grade_by_non_owner_and_missing_submission(
    client, assignment_id, teacher_token, other_teacher_token, auth_header
):
    url = f"/api/assignments/{assignment_id}/submissions/1/grade"
    resp = client.put(url, json={"grade": 50}, headers=auth_header(other_teacher_token))
    assert resp.status_code == 403
    assert resp.json()["code"] == "not_owner"

    resp = client.put(url, json={"grade": 50}, headers=auth_header(teacher_token))
    assert resp.status_code == 404
    assert resp.json()["code"] == "submission_not_found"


def test_update_ignores_unknown_fields(client, assignment_id, teacher_token, auth_header):
    resp = client.put(
        f"/api/assignments/{assignment_id}",
        json={"title": "Lab report v2", "teacher_id": 12345, "status": "draft"},
        headers=auth_header(teacher_token),
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["title"] == "Lab report v2"
    assert body["status"] == "draft"
    assert body["teacher_id"] != 12345


def test_update_and_delete_by_other_teacher(
    client, assignment_id, other_teacher_token, auth_header
):
    headers = auth_header(other_teacher_token)
    resp = client.put(
        f"/api/assignments/{assignment_id}", json={"title": "x"}, headers=headers
    )
    assert resp.status_code == 403
    resp = client.delete(f"/api/assignments/{assignment_id}", headers=headers)
    assert resp.status_code == 403


def test_delete_assignment(client, course_id, assignment_id, teacher_token, auth_header):
    headers = auth_header(teacher_token)
    assert client.delete(f"/api/assignments/{assignment_id}", headers=headers).status_code == 200

    listed = client.get(f"/api/courses/{course_id}/assignments", headers=headers).json()
    assert listed == []
    assert client.get(f"/api/assignments/{assignment_id}", headers=headers).status_code == 404


@pytest.mark.parametrize("raw_grade", ["1e400", "NaN", "-Infinity"])
def test_non_finite_grade_is_rejected(
    client, assignment_id, teacher_token, student_token, auth_header, raw_grade
):
    submission = client.post(
        f"/api/assignments/{assignment_id}/submit",
        json={"content": "My report"},
        headers=auth_header(student_token),
    ).json()["submission"]

    resp = client.put(
        f"/api/assignments/{assignment_id}/submissions/{submission['id']}/grade",
        content='{"grade": %s}' % raw_grade,
        headers={**auth_header(teacher_token), "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"

    submissions = client.get(
        f"/api/assignments/{assignment_id}/submissions",
        headers=auth_header(teacher_token),
    ).json()
    assert submissions[0]["grade"] is None
    assert submissions[0]["state"] == "submitted"


def test_oversized_total_points_is_a_validation_error(
    client, course_id, assignment_id, teacher_token, auth_header
):
    resp = client.post(
        f"/api/courses/{course_id}/assignments",
        json={
            "title": "T",
            "description": "D",
            "due_date": "2030-03-01T09:00:00",
            "total_points": 10**20,
        },
        headers=auth_header(teacher_token),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"

    resp = client.put(
        f"/api/assignments/{assignment_id}",
        json={"total_points": 10**20},
        headers=auth_header(teacher_token),
    )
    assert resp.status_code == 400
