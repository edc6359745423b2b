from __future__ import annotations

from flask import Blueprint, current_app, flash, g, jsonify, redirect, render_template, request, url_for

from app.coaching.constants import PHOTO_KINDS
from app.coaching.db import db_session
from app.coaching.models import User
from app.coaching.modules.progress.service import (
    MEASUREMENT_FIELDS,
    MEASUREMENT_LABELS,
    create_measurement,
    list_measurements,
    list_photos,
    upload_progress_photo,
    weight_change,
    weight_series,
)
from app.coaching.rbac import require_permission

bp = Blueprint("progress", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


# ---------- Measurements ----------
@bp.get("/student/measurements")
@require_permission("student.view")
def measurements_list():
    s = db_session()
    u = _current_user()
    measurements = list_measurements(s, u.id)
    return render_template(
        "student/measurements.html",
        measurements=measurements,
        weight_change=weight_change(measurements),
        fields=MEASUREMENT_FIELDS,
        labels=MEASUREMENT_LABELS,
    )


@bp.post("/student/measurements")
@require_permission("student.view")
def measurements_create():
    s = db_session()
    u = _current_user()
    try:
        create_measurement(s, u, request.form)
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("progress.measurements_list"))
    flash("Measurements saved.", "success")
    return redirect(url_for("progress.measurements_list"))


@bp.get("/student/measurements/weights.json")
@require_permission("student.view")
def measurements_weights():
    s = db_session()
    u = _current_user()
    return jsonify({"series": weight_series(s, u.id)})


# ---------- Photos ----------
@bp.get("/student/photos")
@require_permission("student.view")
def photos_list():
    s = db_session()
    u = _current_user()
    return render_template("student/photos.html", photos=list_photos(s, u.id), kinds=PHOTO_KINDS)


@bp.post("/student/photos")
@require_permission("student.view")
def photos_upload():
    s = db_session()
    u = _current_user()
    f = request.files.get("file")
    if not f or not f.filename:
        flash("Choose a photo to upload.", "danger")
        return redirect(url_for("progress.photos_list"))

    try:
        upload_progress_photo(
            s,
            u,
            request.form.get("kind") or "",
            f.read(),
            f.filename,
            f.mimetype,
            max_bytes=int(current_app.config.get("MAX_PHOTO_BYTES") or 10 * 1024 * 1024),
        )
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("progress.photos_list"))

    flash("Photo uploaded.", "success")
    return redirect(url_for("progress.photos_list"))
