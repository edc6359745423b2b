from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.coaching.audit import record_event
from app.coaching.constants import PHOTO_KINDS
from app.coaching.utils import parse_positive_number, sanitize_upload_filename, validate_image_upload

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.coaching.models import User
    from app.coaching.modules.progress.models import Measurement, ProgressPhoto

MEASUREMENT_FIELDS = (
    "weight_kg",
    "chest_cm",
    "waist_cm",
    "arm_left_cm",
    "arm_right_cm",
    "thigh_left_cm",
    "thigh_right_cm",
    "calf_cm",
)

MEASUREMENT_LABELS = {
    "weight_kg": "Weight (kg)",
    "chest_cm": "Chest (cm)",
    "waist_cm": "Waist (cm)",
    "arm_left_cm": "Left arm (cm)",
    "arm_right_cm": "Right arm (cm)",
    "thigh_left_cm": "Left thigh (cm)",
    "thigh_right_cm": "Right thigh (cm)",
    "calf_cm": "Calf (cm)",
}


def parse_measurement_payload(payload: dict) -> dict[str, float | None]:
    """
    Every body measurement is required and must be a positive number.
    Body fat is optional; a non-positive value is stored as empty.
    """
    values: dict[str, float | None] = {}
    for field in MEASUREMENT_FIELDS:
        value = parse_positive_number(payload.get(field))
        if value is None:
            raise ValueError("Please fill in every field.")
        values[field] = value
    values["body_fat_pct"] = parse_positive_number(payload.get("body_fat_pct"))
    return values


def create_measurement(s: "Session", user: "User", payload: dict) -> "Measurement":
    from app.coaching.modules.progress.models import Measurement

    values = parse_measurement_payload(payload)
    m = Measurement(user_id=user.id, measured_at=datetime.utcnow(), **values)
    s.add(m)
    s.flush()
    record_event(
        s,
        actor=user,
        action="measurement.create",
        entity=m,
        metadata=values,
    )
    return m


def list_measurements(s: "Session", user_id: int, limit: int | None = None) -> list["Measurement"]:
    from app.coaching.modules.progress.models import Measurement

    q = (
        s.query(Measurement)
        .filter(Measurement.user_id == user_id)
        .order_by(Measurement.measured_at.desc(), Measurement.id.desc())
    )
    if limit:
        q = q.limit(limit)
    return q.all()


def weight_series(s: "Session", user_id: int) -> list[dict]:
    """Weight history, oldest first (chart input)."""
    rows = list(reversed(list_measurements(s, user_id)))
    return [{"date": m.measured_at.date().isoformat(), "weight_kg": m.weight_kg} for m in rows]


def weight_change(measurements_newest_first: list["Measurement"]) -> float | None:
    if len(measurements_newest_first) < 2:
        return None
    latest, previous = measurements_newest_first[0], measurements_newest_first[1]
    return round(latest.weight_kg - previous.weight_kg, 1)


def upload_progress_photo(
    s: "Session",
    user: "User",
    kind: str,
    file_bytes: bytes,
    filename: str,
    content_type: str | None,
    *,
    max_bytes: int,
) -> "ProgressPhoto":
    from flask import current_app
    from app.coaching.storage import storage_from_config
    from app.coaching.modules.progress.models import ProgressPhoto

    kind = (kind or "").strip().lower()
    if kind not in PHOTO_KINDS:
        raise ValueError(f"Invalid photo type. Must be one of: {', '.join(PHOTO_KINDS)}")
    ctype = validate_image_upload(filename, content_type, len(file_bytes), max_bytes)

    safe_name = sanitize_upload_filename(filename, default="photo.jpg")
    stamp = int(datetime.utcnow().timestamp() * 1000)
    storage_key = f"photos/{user.id}/{kind}_{stamp}_{safe_name}"

    storage = storage_from_config(current_app.config)
    storage.put_bytes(storage_key, file_bytes, content_type=ctype)

    photo = ProgressPhoto(user_id=user.id, kind=kind, storage_key=storage_key, content_type=ctype)
    s.add(photo)
    s.flush()
    record_event(
        s,
        actor=user,
        action="progress_photo.upload",
        entity=photo,
        metadata={"kind": kind, "storage_key": storage_key},
    )
    return photo


def list_photos(s: "Session", user_id: int, limit: int | None = None) -> list["ProgressPhoto"]:
    from app.coaching.modules.progress.models import ProgressPhoto

    q = (
        s.query(ProgressPhoto)
        .filter(ProgressPhoto.user_id == user_id)
        .order_by(ProgressPhoto.uploaded_at.desc(), ProgressPhoto.id.desc())
    )
    if limit:
        q = q.limit(limit)
    return q.all()
