"""
Test configuration and setup for ClassPulse
"""

import os
import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Add this repo's `src/` to path for imports
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Set test environment variables before any service reads them
os.environ["CLASSPULSE_TEST_MODE"] = "1"
os.environ["CLASSPULSE_JWT_SECRET"] = "test-secret-for-classpulse-suite-0123456789"

# Reset settings service to ensure it loads env-test.properties
from classpulse.core.services.settings_config_service import reset_settings_service

reset_settings_service()

PASSWORD = "Password123!"

# Module-level singletons rebuilt for every test so none keeps a stale
# database, log dir or settings object from the previous one
_SINGLETONS = [
    ("classpulse.core.services.auth", "_auth_service"),
    ("classpulse.core.services.auth", "_principal_resolver"),
    ("classpulse.core.services.enrollment_service", "_enrollment_registry"),
    ("classpulse.core.services.assignment_service", "_assignment_lifecycle"),
    ("classpulse.core.services.behavior_service", "_behavior_service"),
    ("classpulse.core.services.privacy_service", "_privacy_filter"),
    ("classpulse.core.services.insight_service", "_insight_service"),
]


@pytest.fixture(scope="function")
def test_data_dir():
    """Create a temporary test data directory"""
    temp_dir = tempfile.mkdtemp(prefix="classpulse_test_")
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def test_db_path(test_data_dir):
    return test_data_dir / "test.db"


@pytest.fixture
def test_log_dir(test_data_dir):
    log_dir = test_data_dir / "logs"
    log_dir.mkdir(exist_ok=True)
    return log_dir


@pytest.fixture(autouse=True)
def setup_test_env(test_db_path, test_log_dir, monkeypatch):
    """Point every service at this test's temp database and log dir"""
    import importlib

    from classpulse.core.services.logging import reset_logging_service

    monkeypatch.setenv("CLASSPULSE_DB_PATH", str(test_db_path))
    monkeypatch.setenv("CLASSPULSE_LOG_DIR", str(test_log_dir))

    reset_settings_service()
    reset_logging_service()
    for module_name, attr in _SINGLETONS:
        monkeypatch.setattr(importlib.import_module(module_name), attr, None)

    yield

    reset_logging_service()


@pytest.fixture
def db_service(test_db_path):
    """Provide a database service for tests"""
    from classpulse.core.services.database import init_db_service

    service = init_db_service(str(test_db_path))

    yield service

    service.close()


@pytest.fixture
def client(db_service):
    """FastAPI TestClient backed by the test database."""
    from fastapi.testclient import TestClient

    from classpulse.api.main import app

    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db_service, email, display_name, role):
    from classpulse.core.models import User
    from classpulse.core.security import hash_password

    user = User(
        email=email,
        display_name=display_name,
        role=role,
        password_hash=hash_password(PASSWORD),
    )
    db_service.session.add(user)
    db_service.session.commit()
    db_service.session.refresh(user)
    return user


@pytest.fixture
def test_teacher(db_service):
    from classpulse.core.models import UserRole

    return _make_user(db_service, "teacher@test.com", "Test Teacher", UserRole.TEACHER)


@pytest.fixture
def other_teacher(db_service):
    from classpulse.core.models import UserRole

    return _make_user(db_service, "teacher2@test.com", "Other Teacher", UserRole.TEACHER)


@pytest.fixture
def test_student(db_service):
    from classpulse.core.models import UserRole

    return _make_user(db_service, "student@test.com", "Test Student", UserRole.STUDENT)


@pytest.fixture
def other_student(db_service):
    from classpulse.core.models import UserRole

    return _make_user(db_service, "student2@test.com", "Other Student", UserRole.STUDENT)


@pytest.fixture
def test_admin(db_service):
    from classpulse.core.models import UserRole

    return _make_user(db_service, "admin@test.com", "Test Admin", UserRole.ADMIN)


def _principal(user):
    from classpulse.core.services.auth import Principal

    return Principal.from_user(user)


@pytest.fixture
def teacher(test_teacher):
    """Principal for the default teacher (service-level tests)."""
    return _principal(test_teacher)


@pytest.fixture
def teacher2(other_teacher):
    return _principal(other_teacher)


@pytest.fixture
def student(test_student):
    return _principal(test_student)


@pytest.fixture
def student2(other_student):
    return _principal(other_student)


@pytest.fixture
def admin(test_admin):
    return _principal(test_admin)


def _login(client, user):
    resp = client.post(
        "/api/auth/login", data={"username": user.email, "password": PASSWORD}
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


@pytest.fixture
def teacher_token(client, test_teacher):
    return _login(client, test_teacher)


@pytest.fixture
def other_teacher_token(client, other_teacher):
    return _login(client, other_teacher)


@pytest.fixture
def student_token(client, test_student):
    return _login(client, test_student)


@pytest.fixture
def other_student_token(client, other_student):
    return _login(client, other_student)


@pytest.fixture
def admin_token(client, test_admin):
    return _login(client, test_admin)


@pytest.fixture
def auth_header():
    def _auth_header(token):
        return {"Authorization": f"Bearer {token}"}

    return _auth_header


@pytest.fixture
def course_with_student(teacher, student):
    """A course owned by ``teacher`` with ``student`` enrolled."""
    from classpulse.core.services.enrollment_service import get_enrollment_registry

    registry = get_enrollment_registry()
    course = registry.create_course(teacher, title="Algebra", subject="Math", grade="9")
    registry.enroll_direct(course["id"], student)
    return course


@pytest.fixture
def assignment(teacher, course_with_student):
    from classpulse.core.services.assignment_service import get_assignment_lifecycle

    return get_assignment_lifecycle().create(
        course_with_student["id"],
        teacher,
        {
            "title": "Homework 1",
            "description": "Solve the exercises",
            "due_date": "2030-01-15T12:00:00Z",
        },
    )
