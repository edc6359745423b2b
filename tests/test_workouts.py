import io
import json
from datetime import date, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.coaching import create_app
from app.coaching.auth import _login_attempts
from app.coaching.db import create_schema, session_scope
from app.coaching.models import AuditEvent, User
from app.coaching.modules.workouts.models import Exercise, ExerciseLog, WorkoutFile, WorkoutRoutine, WorkoutSession
from app.coaching.modules.workouts.service import parse_sets_text, read_pdf_page_count
from app.coaching.rbac import ensure_roles


def _pdf_bytes(pages: int = 1) -> bytes:
    """Smallest well-formed PDF with a correct xref table."""
    kids = " ".join(f"{3 + i} 0 R" for i in range(pages))
    objs = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {pages} >>".encode(),
    ]
    objs += [b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>" for _ in range(pages)]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for i, body in enumerate(objs, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % i + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objs) + 1)
    out += b"0000000000 65535 f \n"
    for off in offsets:
        out += b"%010d 00000 n \n" % off
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objs) + 1, xref_at)
    return bytes(out)


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOCAL_STORAGE_ROOT", str(tmp_path / "storage"))
    monkeypatch.setenv("COACH_WHATSAPP_NUMBER", "+1 555 0100")
    _login_attempts.clear()

    app = create_app()
    create_schema(app)

    with session_scope(app) as s:
        roles = ensure_roles(s)
        coach = User(email="coach@example.com", full_name="Carl Coach", password_hash=generate_password_hash("pw"))
        coach.roles.append(roles["coach"])
        active = User(
            email="active@example.com",
            full_name="Ana Active",
            password_hash=generate_password_hash("pw"),
            payment_status="paid",
            plan_expires_on=date.today() + timedelta(days=15),
        )
        active.roles.append(roles["student"])
        expired = User(
            email="expired@example.com",
            full_name="Eduardo Expired",
            password_hash=generate_password_hash("pw"),
            payment_status="paid",
            plan_expires_on=date.today() - timedelta(days=3),
        )
        expired.roles.append(roles["student"])
        s.add_all([coach, active, expired])
        s.add_all([Exercise(name="Squat", muscle_group="Legs"), Exercise(name="Bench Press", muscle_group="Chest")])

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email, password="pw"):
    return client.post("/auth/login", data={"email": email, "password": password})


def _csrf(client) -> str:
    client.get("/auth/login")
    with client.session_transaction() as sess:
        return sess["csrf_token"]


def _ids(app):
    with session_scope(app) as s:
        users = {u.email: u.id for u in s.query(User).all()}
        exercises = {e.name: e.id for e in s.query(Exercise).all()}
    return users, exercises


# ---------- Pure helpers ----------
def test_parse_sets_text_defaults_and_values():
    assert parse_sets_text("") == [
        {"order": 1, "load_kg": 0.0, "reps": 12},
        {"order": 2, "load_kg": 0.0, "reps": 12},
        {"order": 3, "load_kg": 0.0, "reps": 12},
    ]
    assert parse_sets_text("12x20, 10x22.5kg, 8") == [
        {"order": 1, "load_kg": 20.0, "reps": 12},
        {"order": 2, "load_kg": 22.5, "reps": 10},
        {"order": 3, "load_kg": 0.0, "reps": 8},
    ]
    with pytest.raises(ValueError):
        parse_sets_text("twelve x 20")


def test_read_pdf_page_count():
    assert read_pdf_page_count(_pdf_bytes()) == 1
    assert read_pdf_page_count(_pdf_bytes(pages=3)) == 3
    with pytest.raises(ValueError):
        read_pdf_page_count(b"hello, not a pdf")


# ---------- PDF upload ----------
def test_coach_uploads_pdf_and_student_downloads(app, client):
    users, _ = _ids(app)
    token = _csrf(client)
    _login(client, "coach@example.com")

    r = client.post(
        "/admin/workouts/upload",
        data={"csrf_token": token, "student_id": str(users["active@example.com"]), "file": (io.BytesIO(_pdf_bytes()), "Week 1.pdf")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 302

    with session_scope(app) as s:
        wf = s.query(WorkoutFile).one()
        assert wf.student_id == users["active@example.com"]
        assert wf.page_count == 1
        assert wf.storage_key.startswith(f"workouts/{users['active@example.com']}/")
        assert wf.storage_key.endswith("_Week_1.pdf")
        assert s.query(AuditEvent).filter(AuditEvent.action == "workout_file.upload").count() == 1
        file_id = wf.id

    client.get("/auth/logout")
    _login(client, "active@example.com")
    r = client.get("/student/workouts")
    assert r.status_code == 200
    assert b"Week_1.pdf" in r.data

    r = client.get(f"/files/workouts/{file_id}")
    assert r.status_code == 200
    assert r.data.startswith(b"%PDF")


def test_upload_rejects_non_pdf(app, client):
    users, _ = _ids(app)
    token = _csrf(client)
    _login(client, "coach@example.com")

    r = client.post(
        "/admin/workouts/upload",
        data={"csrf_token": token, "student_id": str(users["active@example.com"]), "file": (io.BytesIO(b"text"), "notes.txt")},
        content_type="multipart/form-data",
        follow_redirects=True,
    )
    assert b"Only PDF files are accepted." in r.data

    r = client.post(
        "/admin/workouts/upload",
        data={"csrf_token": token, "student_id": str(users["active@example.com"]), "file": (io.BytesIO(b"garbage"), "fake.pdf")},
        content_type="multipart/form-data",
        follow_redirects=True,
    )
    assert b"File is not a PDF." in r.data

    with session_scope(app) as s:
        assert s.query(WorkoutFile).count() == 0


def test_oversized_upload_reports_configured_limit(app, client):
    users, _ = _ids(app)
    app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024
    token = _csrf(client)
    _login(client, "coach@example.com")

    r = client.post(
        "/admin/workouts/upload",
        data={
            "csrf_token": token,
            "student_id": str(users["active@example.com"]),
            "file": (io.BytesIO(b"%PDF-1.4\n" + b"0" * (2 * 1024 * 1024)), "huge.pdf"),
        },
        content_type="multipart/form-data",
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"Maximum upload size is 1MB." in r.data

    with session_scope(app) as s:
        assert s.query(WorkoutFile).count() == 0


def test_student_cannot_download_someone_elses_pdf(app, client):
    users, _ = _ids(app)
    token = _csrf(client)
    _login(client, "coach@example.com")
    client.post(
        "/admin/workouts/upload",
        data={"csrf_token": token, "student_id": str(users["expired@example.com"]), "file": (io.BytesIO(_pdf_bytes()), "plan.pdf")},
        content_type="multipart/form-data",
    )
    with session_scope(app) as s:
        file_id = s.query(WorkoutFile).one().id

    client.get("/auth/logout")
    _login(client, "active@example.com")
    assert client.get(f"/files/workouts/{file_id}").status_code == 404


# ---------- Routines ----------
def test_create_routine_with_defaults(app, client):
    users, exercises = _ids(app)
    token = _csrf(client)
    _login(client, "coach@example.com")

    r = client.post(
        "/admin/workouts/routines/new",
        data={
            "csrf_token": token,
            "student_id": str(users["active@example.com"]),
            "name": "Workout A",
            "exercise_id": [str(exercises["Squat"]), str(exercises["Bench Press"]), ""],
            "rest": ["", "2:00", ""],
            "video_url": ["", "https://video.example.com/bench", ""],
            "sets": ["", "10x40, 8x45", ""],
        },
    )
    assert r.status_code == 302

    with session_scope(app) as s:
        routine = s.query(WorkoutRoutine).one()
        assert routine.is_active is True
        config = json.loads(routine.config_json)
        assert [c["name"] for c in config] == ["Squat", "Bench Press"]
        assert config[0]["rest"] == "1:30"
        assert len(config[0]["sets"]) == 3
        assert config[0]["sets"][0] == {"order": 1, "load_kg": 0.0, "reps": 12}
        assert config[1]["rest"] == "2:00"
        assert config[1]["sets"][1] == {"order": 2, "load_kg": 45.0, "reps": 8}
        assert s.query(AuditEvent).filter(AuditEvent.action == "routine.create").count() == 1

    client.get("/auth/logout")
    _login(client, "active@example.com")
    r = client.get("/student/workouts")
    assert b"Workout A" in r.data


def test_routine_rejects_duplicates_and_empty(app, client):
    users, exercises = _ids(app)
    token = _csrf(client)
    _login(client, "coach@example.com")

    squat = str(exercises["Squat"])
    r = client.post(
        "/admin/workouts/routines/new",
        data={"csrf_token": token, "student_id": str(users["active@example.com"]), "name": "Dup", "exercise_id": [squat, squat]},
        follow_redirects=True,
    )
    assert b"already added" in r.data

    r = client.post(
        "/admin/workouts/routines/new",
        data={"csrf_token": token, "student_id": str(users["active@example.com"]), "name": "Empty"},
        follow_redirects=True,
    )
    assert b"Add at least one exercise" in r.data

    with session_scope(app) as s:
        assert s.query(WorkoutRoutine).count() == 0


def test_exercise_library_names_are_unique(app, client):
    token = _csrf(client)
    _login(client, "coach@example.com")

    r = client.post("/admin/workouts/exercises", data={"csrf_token": token, "name": "Hip Thrust", "muscle_group": "Glutes"})
    assert r.status_code == 302
    r = client.post("/admin/workouts/exercises", data={"csrf_token": token, "name": "squat"}, follow_redirects=True)
    assert b"already exists" in r.data

    with session_scope(app) as s:
        assert s.query(Exercise).count() == 3


def test_exercise_names_with_like_wildcards_are_literal(app, client):
    token = _csrf(client)
    _login(client, "coach@example.com")

    r = client.post("/admin/workouts/exercises", data={"csrf_token": token, "name": "Squa_"})
    assert r.status_code == 302
    r = client.post("/admin/workouts/exercises", data={"csrf_token": token, "name": "%"})
    assert r.status_code == 302
    r = client.post("/admin/workouts/exercises", data={"csrf_token": token, "name": "SQUA_"}, follow_redirects=True)
    assert b"already exists" in r.data

    with session_scope(app) as s:
        names = sorted(e.name for e in s.query(Exercise).all())
    assert names == ["%", "Bench Press", "Squa_", "Squat"]


# ---------- Logs and check-in ----------
def test_log_sheet_validation_and_last_load(app, client):
    _, exercises = _ids(app)
    token = _csrf(client)
    _login(client, "active@example.com")

    r = client.post(
        "/student/workouts/log",
        data={"csrf_token": token, "exercise_id": str(exercises["Squat"]), "sets": "3", "reps": "10", "load_kg": "0"},
        follow_redirects=True,
    )
    assert b"Fill in sets, reps and load correctly" in r.data

    for load in ("60", "62,5"):
        client.post(
            "/student/workouts/log",
            data={"csrf_token": token, "exercise_id": str(exercises["Squat"]), "sets": "3", "reps": "10", "load_kg": load},
        )

    with session_scope(app) as s:
        assert s.query(ExerciseLog).count() == 2

    r = client.get("/student/workouts/log")
    assert r.status_code == 200
    assert b"62.5 kg" in r.data


def test_check_in_updates_ranking_fields(app, client):
    users, _ = _ids(app)
    token = _csrf(client)
    _login(client, "active@example.com")

    r = client.post("/student/workouts/check-in", data={"csrf_token": token})
    assert r.status_code == 302
    client.post("/student/workouts/check-in", data={"csrf_token": token})

    with session_scope(app) as s:
        u = s.get(User, users["active@example.com"])
        assert u.training_frequency == 2
        assert u.last_checkin_at is not None
        assert s.query(WorkoutSession).filter(WorkoutSession.student_id == u.id).count() == 2


# ---------- Subscription gating ----------
def test_expired_student_is_blocked_and_marked_overdue(app, client):
    users, _ = _ids(app)
    _login(client, "expired@example.com")

    r = client.get("/student/workouts")
    assert r.status_code == 402
    assert b"Renewal required" in r.data
    assert b"https://wa.me/15550100" in r.data

    assert client.get("/student/nutrition").status_code == 402
    assert client.get("/student/workouts/log").status_code == 402

    with session_scope(app) as s:
        assert s.get(User, users["expired@example.com"]).payment_status == "overdue"
        assert s.query(AuditEvent).filter(AuditEvent.action == "subscription.mark_overdue").count() == 1

    # still reaches ungated pages
    assert client.get("/student/measurements").status_code == 200
    r = client.get("/student/")
    assert r.status_code == 200
    assert b"Your plan is overdue" in r.data


def test_expired_student_pdf_download_marks_overdue(app, client):
    users, _ = _ids(app)
    token = _csrf(client)
    _login(client, "coach@example.com")
    client.post(
        "/admin/workouts/upload",
        data={"csrf_token": token, "student_id": str(users["expired@example.com"]), "file": (io.BytesIO(_pdf_bytes()), "old.pdf")},
        content_type="multipart/form-data",
    )
    with session_scope(app) as s:
        file_id = s.query(WorkoutFile).one().id
    client.get("/auth/logout")

    _login(client, "expired@example.com")
    assert client.get(f"/files/workouts/{file_id}").status_code == 403

    with session_scope(app) as s:
        assert s.get(User, users["expired@example.com"]).payment_status == "overdue"
        assert s.query(AuditEvent).filter(AuditEvent.action == "subscription.mark_overdue").count() == 1
        assert s.query(AuditEvent).filter(AuditEvent.action == "workout_file.download").count() == 0


def test_active_student_sees_dashboard(client):
    _login(client, "active@example.com")
    r = client.get("/student/")
    assert r.status_code == 200
    assert b"day(s) left on your plan" in r.data
    assert client.get("/student/nutrition").status_code == 200
