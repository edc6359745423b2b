from __future__ import annotations

from flask import Blueprint, flash, g, redirect, render_template, request, url_for

from app.coaching.constants import ROLE_COACH, ROLE_LABELS, ROLE_PERMISSIONS, ROLE_SUPER_ADMIN
from app.coaching.db import db_session
from app.coaching.models import Role, User
from app.coaching.modules.super_admin.service import assign_role
from app.coaching.rbac import require_permission

bp = Blueprint("super_admin", __name__)


@bp.get("/")
@require_permission("roles.assign")
def index():
    s = db_session()
    staff = (
        s.query(User)
        .join(User.roles)
        .filter(Role.key.in_([ROLE_COACH, ROLE_SUPER_ADMIN]))
        .order_by(User.email.asc())
        .all()
    )
    return render_template(
        "super_admin/index.html",
        staff=staff,
        roles=[(key, ROLE_LABELS[key]) for key in ROLE_PERMISSIONS],
    )


@bp.post("/set-role")
@require_permission("roles.assign")
def set_role_post():
    s = db_session()
    try:
        _, message = assign_role(
            s,
            request.form.get("email") or "",
            request.form.get("role"),
            request.form.get("full_name"),
            g.current_user,
        )
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("super_admin.index"))
    flash(message, "success")
    return redirect(url_for("super_admin.index"))
