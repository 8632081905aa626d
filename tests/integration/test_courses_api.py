def _create_course(client, headers, **overrides):
    body = {"title": "Algebra", "subject": "Math", "grade": "9"}
    body.update(overrides)
    resp = client.post("/api/courses", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_teacher_creates_course_with_generated_code(client, teacher_token, auth_header):
    course = _create_course(client, auth_header(teacher_token))
    assert len(course["join_code"]) == 6
    assert course["student_ids"] == []


def test_student_cannot_create_course(client, student_token, auth_header):
    resp = client.post(
        "/api/courses",
        json={"title": "X", "subject": "Y", "grade": "1"},
        headers=auth_header(student_token),
    )
    assert resp.status_code == 403


def test_duplicate_explicit_code(client, teacher_token, other_teacher_token, auth_header):
    _create_course(client, auth_header(teacher_token), join_code="MATH9")
    resp = client.post(
        "/api/courses",
        json={"title": "B", "subject": "Math", "grade": "9", "join_code": "math9"},
        headers=auth_header(other_teacher_token),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "join_code_taken"


def test_join_by_code_and_repeat(client, teacher_token, student_token, auth_header):
    course = _create_course(client, auth_header(teacher_token), join_code="JOIN42")

    resp = client.post(
        "/api/courses/join", json={"code": "join42"}, headers=auth_header(student_token)
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["course_id"] == course["id"]

    resp = client.post(
        "/api/courses/join", json={"code": "JOIN42"}, headers=auth_header(student_token)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "already_enrolled"


def test_join_unknown_code(client, student_token, auth_header):
    resp = client.post(
        "/api/courses/join", json={"code": "ZZZZ"}, headers=auth_header(student_token)
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "course_not_found"


def test_enroll_direct(client, teacher_token, student_token, auth_header):
    course = _create_course(client, auth_header(teacher_token))
    url = f"/api/courses/{course['id']}/enroll"

    assert client.post(url, headers=auth_header(student_token)).status_code == 200
    resp = client.post(url, headers=auth_header(student_token))
    assert resp.status_code == 400
    assert resp.json()["code"] == "already_enrolled"

    resp = client.post("/api/courses/9999/enroll", headers=auth_header(student_token))
    assert resp.status_code == 404


def test_enroll_requires_credential(client, db_service):
    resp = client.post("/api/courses/1/enroll")
    assert resp.status_code == 401


def test_catalog_and_my_courses(client, teacher_token, auth_header):
    _create_course(client, auth_header(teacher_token), title="Public")

    catalog = client.get("/api/courses").json()
    assert [c["title"] for c in catalog] == ["Public"]
    assert "join_code" not in catalog[0]

    mine = client.get("/api/courses/mine", headers=auth_header(teacher_token)).json()
    assert "join_code" in mine[0]


def test_delete_course_with_students_is_refused(
    client, teacher_token, student_token, auth_header
):
    course = _create_course(client, auth_header(teacher_token))
    client.post(f"/api/courses/{course['id']}/enroll", headers=auth_header(student_token))

    resp = client.delete(f"/api/courses/{course['id']}", headers=auth_header(teacher_token))
    assert resp.status_code == 400
    assert resp.json()["code"] == "course_has_students"
    assert client.get(f"/api/courses/{course['id']}").status_code == 200


def test_delete_empty_course(client, teacher_token, other_teacher_token, auth_header):
    course = _create_course(client, auth_header(teacher_token))

    resp = client.delete(
        f"/api/courses/{course['id']}", headers=auth_header(other_teacher_token)
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "not_owner"

    resp = client.delete(f"/api/courses/{course['id']}", headers=auth_header(teacher_token))
    assert resp.status_code == 200
    assert client.get(f"/api/courses/{course['id']}").status_code == 404
