import io
import json
from datetime import date, datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.coaching import create_app
from app.coaching.auth import _login_attempts
from app.coaching.db import create_schema, session_scope
from app.coaching.models import User
from app.coaching.modules.partners.models import Partner
from app.coaching.modules.progress.models import Measurement, ProgressPhoto
from app.coaching.modules.progress.service import parse_measurement_payload, weight_change
from app.coaching.rbac import ensure_roles

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

FULL_MEASUREMENT = {
    "weight_kg": "80,4",
    "chest_cm": "100",
    "waist_cm": "82",
    "arm_left_cm": "35",
    "arm_right_cm": "35.5",
    "thigh_left_cm": "58",
    "thigh_right_cm": "58",
    "calf_cm": "38",
}


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

    with session_scope(app) as s:
        roles = ensure_roles(s)
        coach = User(email="coach@example.com", full_name="Carl Coach", password_hash=generate_password_hash("pw"))
        coach.roles.append(roles["coach"])
        student = User(
            email="student@example.com",
            full_name="Sofia Student",
            password_hash=generate_password_hash("pw"),
            payment_status="paid",
            plan_expires_on=date.today() + timedelta(days=30),
        )
        student.roles.append(roles["student"])
        s.add_all([coach, student])

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


# ---------- Measurements ----------
def test_parse_measurement_payload():
    values = parse_measurement_payload(FULL_MEASUREMENT)
    assert values["weight_kg"] == 80.4
    assert values["body_fat_pct"] is None

    for field in FULL_MEASUREMENT:
        payload = dict(FULL_MEASUREMENT, **{field: ""})
        with pytest.raises(ValueError, match="Please fill in every field"):
            parse_measurement_payload(payload)

    with pytest.raises(ValueError):
        parse_measurement_payload(dict(FULL_MEASUREMENT, waist_cm="-3"))


def test_weight_change_uses_latest_two_entries():
    newest_first = [Measurement(weight_kg=79.1), Measurement(weight_kg=80.4), Measurement(weight_kg=90)]
    assert weight_change(newest_first) == -1.3
    assert weight_change(newest_first[:1]) is None
    assert weight_change([]) is None


def test_measurements_flow_and_weight_series(app, client):
    token = _csrf(client)
    _login(client, "student@example.com")

    r = client.post("/student/measurements", data=dict(FULL_MEASUREMENT, weight_kg="", csrf_token=token), follow_redirects=True)
    assert b"Please fill in every field" in r.data

    with session_scope(app) as s:
        uid = s.query(User).filter(User.email == "student@example.com").one().id
        s.add(Measurement(user_id=uid, measured_at=datetime(2026, 1, 10), **{k: 1.0 for k in FULL_MEASUREMENT}))

    r = client.post("/student/measurements", data=dict(FULL_MEASUREMENT, body_fat_pct="18", csrf_token=token))
    assert r.status_code == 302

    with session_scope(app) as s:
        rows = s.query(Measurement).order_by(Measurement.measured_at.desc()).all()
        assert len(rows) == 2
        assert rows[0].body_fat_pct == 18.0

    r = client.get("/student/measurements/weights.json")
    assert r.status_code == 200
    series = r.json["series"]
    assert [p["weight_kg"] for p in series] == [1.0, 80.4]
    assert series[0]["date"] == "2026-01-10"

    r = client.get("/student/measurements")
    assert b"+79.4 kg" in r.data


# ---------- Photos ----------
def test_photo_upload_validates_kind_and_type(app, client):
    token = _csrf(client)
    _login(client, "student@example.com")

    r = client.post(
        "/student/photos",
        data={"csrf_token": token, "kind": "front", "file": (io.BytesIO(PNG), "me front.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 302

    r = client.post(
        "/student/photos",
        data={"csrf_token": token, "kind": "top", "file": (io.BytesIO(PNG), "me.png", "image/png")},
        content_type="multipart/form-data",
        follow_redirects=True,
    )
    assert b"Invalid photo type" in r.data

    r = client.post(
        "/student/photos",
        data={"csrf_token": token, "kind": "side", "file": (io.BytesIO(b"%PDF-1.4"), "doc.pdf", "application/pdf")},
        content_type="multipart/form-data",
        follow_redirects=True,
    )
    assert b"Only image files are accepted" in r.data

    with session_scope(app) as s:
        photo = s.query(ProgressPhoto).one()
        assert photo.kind == "front"
        assert photo.storage_key.startswith(f"photos/{photo.user_id}/front_")
        assert photo.storage_key.endswith("_me_front.png")
        photo_id = photo.id

    r = client.get(f"/files/photos/{photo_id}")
    assert r.status_code == 200
    assert r.data == PNG


def test_photo_size_limit(app, client):
    app.config["MAX_PHOTO_BYTES"] = 32
    token = _csrf(client)
    _login(client, "student@example.com")
    r = client.post(
        "/student/photos",
        data={"csrf_token": token, "kind": "back", "file": (io.BytesIO(PNG), "big.png", "image/png")},
        content_type="multipart/form-data",
        follow_redirects=True,
    )
    assert b"Image too large" in r.data


# ---------- Partners ----------
def test_partner_requires_fields_and_image(app, client):
    token = _csrf(client)
    _login(client, "coach@example.com")

    r = client.post(
        "/admin/partners",
        data={"csrf_token": token, "brand_name": "FitFood", "description": "", "coupon_code": "", "discount_url": "https://fit.example.com"},
        content_type="multipart/form-data",
        follow_redirects=True,
    )
    assert b"Required: Description, Coupon code." in r.data
    assert b"Add at least one image." in r.data

    with session_scope(app) as s:
        assert s.query(Partner).count() == 0


def test_partner_create_order_and_delete(app, client):
    token = _csrf(client)
    _login(client, "coach@example.com")

    for brand, order in (("Zeta Supplements", "0"), ("Alpha Gym Wear", "0"), ("Beta Bars", "-1")):
        r = client.post(
            "/admin/partners",
            data={
                "csrf_token": token,
                "brand_name": brand,
                "description": f"{brand} discount",
                "coupon_code": "COACH10",
                "discount_url": "https://shop.example.com",
                "sort_order": order,
                "images": [(io.BytesIO(PNG), "logo.png", "image/png"), (io.BytesIO(PNG), "extra.jpg", "image/jpeg")],
            },
            content_type="multipart/form-data",
        )
        assert r.status_code == 302

    with session_scope(app) as s:
        partners = s.query(Partner).all()
        assert len(partners) == 3
        p = partners[0]
        keys = json.loads(p.image_keys_json)
        assert len(keys) == 2
        assert p.logo_storage_key == keys[0]
        assert keys[0].endswith("_logo.png")

    client.get("/auth/logout")
    _login(client, "student@example.com")
    body = client.get("/student/partners").data.split(b'class="cards"')[1]
    assert body.index(b"Beta Bars") < body.index(b"Alpha Gym Wear") < body.index(b"Zeta Supplements")

    with session_scope(app) as s:
        zeta_id = s.query(Partner).filter(Partner.brand_name == "Zeta Supplements").one().id
    assert client.get(f"/files/partners/{zeta_id}/0").data == PNG
    assert client.get(f"/files/partners/{zeta_id}/5").status_code == 404

    # students cannot delete
    assert client.post(f"/admin/partners/{zeta_id}/delete", data={"csrf_token": token}).status_code == 403

    client.get("/auth/logout")
    _login(client, "coach@example.com")
    r = client.post(f"/admin/partners/{zeta_id}/delete", data={"csrf_token": token})
    assert r.status_code == 302
    with session_scope(app) as s:
        assert s.query(Partner).count() == 2


# ---------- Profile ----------
def test_profile_name_and_avatar(app, client):
    token = _csrf(client)
    _login(client, "student@example.com")

    r = client.post("/me/", data={"csrf_token": token, "full_name": "Sofia S."})
    assert r.status_code == 302
    r = client.post(
        "/me/avatar",
        data={"csrf_token": token, "file": (io.BytesIO(PNG), "face.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 302

    with session_scope(app) as s:
        u = s.query(User).filter(User.email == "student@example.com").one()
        assert u.full_name == "Sofia S."
        assert u.avatar_storage_key == f"avatars/{u.id}/face.png"
        uid = u.id

    assert client.get(f"/files/avatars/{uid}").data == PNG
