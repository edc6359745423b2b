from datetime import date, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.coaching import create_app
from app.coaching.auth import _login_attempts
from app.coaching.db import create_schema, session_scope
from app.coaching.models import AuditEvent, User
from app.coaching.rbac import ensure_roles


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOCAL_STORAGE_ROOT", str(tmp_path / "storage"))
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)
    _login_attempts.clear()

    app = create_app()
    create_schema(app)

    with session_scope(app) as s:
        roles = ensure_roles(s)
        users = [
            ("admin@example.com", "super_admin", False),
            ("coach@example.com", "coach", False),
            ("student@example.com", "student", False),
            ("gone@example.com", "student", True),
        ]
        for email, role, archived in users:
            u = User(
                email=email,
                password_hash=generate_password_hash("pw"),
                is_active=True,
                is_archived=archived,
                payment_status="paid",
                plan_expires_on=date.today() + timedelta(days=30),
            )
            u.roles.append(roles[role])
            s.add(u)

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email, password="pw", next_path=""):
    return client.post(
        "/auth/login",
        data={"email": email, "password": password, "next": next_path},
        follow_redirects=False,
    )


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True
    assert client.get("/healthz").data == b"ok"


def test_anonymous_is_sent_to_login(client):
    r = client.get("/admin/students/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    r = client.get("/student/workouts")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]


def test_login_routes_by_role(client):
    r = _login(client, "coach@example.com")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/students/")
    client.get("/auth/logout")

    r = _login(client, "admin@example.com")
    assert r.headers["Location"].endswith("/admin/students/")
    client.get("/auth/logout")

    r = _login(client, "student@example.com")
    assert r.headers["Location"].endswith("/student/workouts")


def test_next_is_only_honoured_inside_role_area(client):
    r = _login(client, "student@example.com", next_path="/student/measurements")
    assert r.headers["Location"].endswith("/student/measurements")
    client.get("/auth/logout")

    r = _login(client, "student@example.com", next_path="/admin/reports")
    assert r.headers["Location"].endswith("/student/workouts")
    client.get("/auth/logout")

    r = _login(client, "coach@example.com", next_path="//evil.example.com/x")
    assert r.headers["Location"].endswith("/admin/students/")


def test_bad_password_is_rejected_and_audited(app, client):
    r = _login(client, "coach@example.com", password="nope")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").count() == 1


def test_archived_student_cannot_log_in(client):
    r = _login(client, "gone@example.com")
    assert "/auth/login" in r.headers["Location"]
    r = client.get("/student/")
    assert r.status_code == 302


def test_login_rate_limit(client):
    for _ in range(5):
        _login(client, "coach@example.com", password="wrong")
    r = _login(client, "coach@example.com")
    assert "/auth/login" in r.headers["Location"]
    r = client.get("/auth/login")
    assert b"Too many login attempts" in r.data


def test_student_cannot_reach_coach_pages(client):
    _login(client, "student@example.com")
    assert client.get("/admin/students/").status_code == 403
    assert client.get("/admin/reports").status_code == 403
    assert client.get("/super-admin/").status_code == 403


def test_coach_cannot_reach_super_admin(client):
    _login(client, "coach@example.com")
    assert client.get("/admin/students/").status_code == 200
    assert client.get("/super-admin/").status_code == 403


def test_post_without_csrf_token_is_rejected(client):
    _login(client, "coach@example.com")
    r = client.post("/admin/workouts/exercises", data={"name": "Hip Thrust"})
    assert r.status_code == 400


def test_index_redirects_logged_in_users_home(client):
    assert client.get("/").status_code == 200
    _login(client, "student@example.com")
    r = client.get("/")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/student/workouts")
