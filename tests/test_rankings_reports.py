from datetime import date, datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.coaching import create_app
from app.coaching.auth import _login_attempts
from app.coaching.db import create_schema, session_scope
from app.coaching.models import User
from app.coaching.modules.rankings.service import (
    checkin_ranking,
    frequency_position,
    frequency_ranking,
    position_in,
)
from app.coaching.modules.reports.service import status_breakdown, student_counts
from app.coaching.rbac import ensure_roles


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOCAL_STORAGE_ROOT", str(tmp_path / "storage"))
    _login_attempts.clear()

    app = create_app()
    create_schema(app)

    now = datetime(2026, 6, 1, 12, 0)
    with session_scope(app) as s:
        roles = ensure_roles(s)
        coach = User(email="coach@example.com", full_name="Carl Coach", password_hash=generate_password_hash("pw"))
        coach.roles.append(roles["coach"])
        s.add(coach)

        students = [
            # email, name, status, last check-in, sessions, archived
            ("ana@example.com", "Ana", "paid", now - timedelta(days=2), 10, False),
            ("bia@example.com", "Bia", "paid", now - timedelta(hours=1), 4, False),
            ("caio@example.com", "Caio", "overdue", None, 10, False),
            ("duda@example.com", "Duda", "pending", now - timedelta(days=9), 1, False),
            ("edu@example.com", "Edu", "paid", now, 50, True),
        ]
        for email, name, status, last, sessions, archived in students:
            u = User(
                email=email,
                full_name=name,
                password_hash=generate_password_hash("pw"),
                payment_status=status,
                plan_expires_on=date.today() + timedelta(days=30),
                last_checkin_at=last,
                training_frequency=sessions,
                is_archived=archived,
            )
            u.roles.append(roles["student"])
            s.add(u)

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email, password="pw"):
    return client.post("/auth/login", data={"email": email, "password": password})


def _names(users):
    return [u.full_name for u in users]


def test_checkin_ranking_most_recent_first_and_never_last(app):
    with session_scope(app) as s:
        ranking = checkin_ranking(s)
        assert _names(ranking) == ["Bia", "Ana", "Duda", "Caio"]
        assert position_in(ranking, ranking[2].id) == 3
        assert position_in(ranking, 99999) is None


def test_frequency_ranking_and_shared_positions(app):
    with session_scope(app) as s:
        ranking = frequency_ranking(s)
        assert _names(ranking)[:2] == ["Ana", "Caio"]
        assert _names(ranking)[2:] == ["Bia", "Duda"]

        by_name = {u.full_name: u for u in ranking}
        assert frequency_position(s, by_name["Ana"]) == 1
        assert frequency_position(s, by_name["Caio"]) == 1
        assert frequency_position(s, by_name["Bia"]) == 3
        assert frequency_position(s, by_name["Duda"]) == 4


def test_student_counts_exclude_archived(app):
    with session_scope(app) as s:
        assert student_counts(s) == {"total": 4, "active": 2, "delinquent": 2}
        assert status_breakdown(s) == {"paid": 2, "pending": 1, "overdue": 1}


def test_reports_page_for_coach(client):
    _login(client, "coach@example.com")
    r = client.get("/admin/reports")
    assert r.status_code == 200
    assert b'id="total">4<' in r.data
    assert b'id="active">2<' in r.data
    assert b'id="delinquent">2<' in r.data


def test_admin_ranking_page(client):
    _login(client, "coach@example.com")
    r = client.get("/admin/ranking")
    assert r.status_code == 200
    assert b"Edu" not in r.data
    assert r.data.index(b"Bia") < r.data.index(b"Ana")


def test_student_sees_own_positions(client):
    _login(client, "duda@example.com")
    r = client.get("/student/ranking")
    assert r.status_code == 200
    assert b"Your position: 3 by check-in, 4 by frequency." in r.data
