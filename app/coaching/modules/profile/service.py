from __future__ import annotations

from typing import TYPE_CHECKING

from flask import current_app

from app.coaching.audit import record_event
from app.coaching.storage import storage_from_config
from app.coaching.utils import sanitize_upload_filename, validate_image_upload

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.coaching.models import User

MAX_AVATAR_BYTES = 5 * 1024 * 1024


def update_full_name(s: "Session", user: "User", full_name: str) -> None:
    full_name = (full_name or "").strip()
    if not full_name:
        raise ValueError("Name is required.")
    old = user.full_name
    user.full_name = full_name
    record_event(
        s,
        actor=user,
        action="profile.update",
        entity=user,
        metadata={"full_name": {"old": old, "new": full_name}},
    )


def update_avatar(s: "Session", user: "User", file_bytes: bytes, filename: str, content_type: str | None) -> str:
    """Stores at avatars/<user_id>/<filename>; re-uploading the same name overwrites."""
    ctype = validate_image_upload(filename, content_type, len(file_bytes), MAX_AVATAR_BYTES)
    key = f"avatars/{user.id}/{sanitize_upload_filename(filename, default='avatar.jpg')}"
    storage_from_config(current_app.config).put_bytes(key, file_bytes, content_type=ctype)
    user.avatar_storage_key = key
    record_event(
        s,
        actor=user,
        action="profile.avatar_upload",
        entity=user,
        metadata={"storage_key": key},
    )
    return key
