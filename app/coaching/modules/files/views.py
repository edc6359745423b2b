from __future__ import annotations

import mimetypes

from flask import Blueprint, abort, current_app, g, send_file

from app.coaching.audit import record_event
from app.coaching.db import db_session
from app.coaching.models import User
from app.coaching.modules.partners.models import Partner
from app.coaching.modules.progress.models import ProgressPhoto
from app.coaching.modules.subscriptions.guard import check_subscription
from app.coaching.modules.workouts.models import WorkoutFile
from app.coaching.rbac import require_login, user_has_permission
from app.coaching.storage import StorageError, storage_from_config

bp = Blueprint("files", __name__)


def _open_or_404(key: str):
    try:
        return storage_from_config(current_app.config).open(key)
    except StorageError as e:
        current_app.logger.warning("Stored object missing key=%s: %s", key, e)
        abort(404)


def _can_see_student_data(user: User, owner_id: int) -> bool:
    return user.id == owner_id or user_has_permission(user, "students.view")


@bp.get("/workouts/<int:file_id>")
@require_login
def workout_pdf(file_id: int):
    s = db_session()
    u: User = g.current_user
    wf = s.get(WorkoutFile, file_id)
    if not wf or not _can_see_student_data(u, wf.student_id):
        abort(404)
    # Students only download while their plan is active.
    if u.id == wf.student_id and not check_subscription(u).allowed:
        abort(403)

    fobj = _open_or_404(wf.storage_key)
    record_event(
        s,
        actor=u,
        action="workout_file.download",
        entity=wf,
        metadata={"student_id": wf.student_id},
    )
    s.commit()
    return send_file(
        fobj,
        mimetype=wf.content_type,
        as_attachment=True,
        download_name=wf.original_filename,
        max_age=0,
    )


@bp.get("/photos/<int:photo_id>")
@require_login
def progress_photo(photo_id: int):
    s = db_session()
    photo = s.get(ProgressPhoto, photo_id)
    if not photo or not _can_see_student_data(g.current_user, photo.user_id):
        abort(404)
    return send_file(_open_or_404(photo.storage_key), mimetype=photo.content_type, max_age=0)


@bp.get("/avatars/<int:user_id>")
@require_login
def avatar(user_id: int):
    s = db_session()
    owner = s.get(User, user_id)
    if not owner or not owner.avatar_storage_key:
        abort(404)
    mimetype = mimetypes.guess_type(owner.avatar_storage_key)[0] or "application/octet-stream"
    return send_file(_open_or_404(owner.avatar_storage_key), mimetype=mimetype, max_age=300)


@bp.get("/partners/<int:partner_id>/<int:index>")
@require_login
def partner_image(partner_id: int, index: int):
    s = db_session()
    partner = s.get(Partner, partner_id)
    keys = partner.image_keys if partner else []
    if index < 0 or index >= len(keys):
        abort(404)
    mimetype = mimetypes.guess_type(keys[index])[0] or "application/octet-stream"
    return send_file(_open_or_404(keys[index]), mimetype=mimetype, max_age=300)
