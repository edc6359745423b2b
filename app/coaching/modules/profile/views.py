from __future__ import annotations

from flask import Blueprint, flash, g, redirect, render_template, request, url_for

from app.coaching.db import db_session
from app.coaching.modules.profile.service import update_avatar, update_full_name
from app.coaching.rbac import require_login

bp = Blueprint("profile", __name__)


@bp.get("/")
@require_login
def profile_get():
    return render_template("profile.html", user=g.current_user)


@bp.post("/")
@require_login
def profile_post():
    s = db_session()
    try:
        update_full_name(s, g.current_user, request.form.get("full_name") or "")
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("profile.profile_get"))
    flash("Profile updated.", "success")
    return redirect(url_for("profile.profile_get"))


@bp.post("/avatar")
@require_login
def avatar_post():
    s = db_session()
    f = request.files.get("file")
    if not f or not f.filename:
        flash("Choose an image to upload.", "danger")
        return redirect(url_for("profile.profile_get"))
    try:
        update_avatar(s, g.current_user, f.read(), f.filename, f.mimetype)
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("profile.profile_get"))
    flash("Avatar updated.", "success")
    return redirect(url_for("profile.profile_get"))
