from __future__ import annotations

from datetime import date

from flask import Blueprint, current_app, g, redirect, render_template, url_for

from app.coaching.db import db_session
from app.coaching.modules.progress.service import list_measurements, weight_change
from app.coaching.modules.rankings.service import checkin_ranking, frequency_position, position_in
from app.coaching.modules.subscriptions.guard import subscription_required
from app.coaching.modules.subscriptions.service import dashboard_blocked, days_until, renewal_link
from app.coaching.modules.workouts.service import active_routines
from app.coaching.rbac import require_permission

bp = Blueprint("dashboard", __name__)


@bp.get("/admin/")
@require_permission("admin.view")
def admin_home():
    return redirect(url_for("students.students_list"))


@bp.get("/student/")
@require_permission("student.view")
def student_home():
    s = db_session()
    u = g.current_user
    today = date.today()

    blocked = dashboard_blocked(u, today)
    measurements = list_measurements(s, u.id, limit=2)
    link = None
    if blocked:
        link = renewal_link(
            current_app.config.get("COACH_WHATSAPP_NUMBER", ""),
            current_app.config.get("RENEWAL_MESSAGE", ""),
        )

    return render_template(
        "student/dashboard.html",
        blocked=blocked,
        renewal_link=link,
        days_left=days_until(u.plan_expires_on, today),
        routines=[] if blocked else active_routines(s, u.id),
        latest_measurement=measurements[0] if measurements else None,
        weight_change=weight_change(measurements),
        checkin_position=position_in(checkin_ranking(s), u.id),
        frequency_position=frequency_position(s, u),
    )


@bp.get("/student/nutrition")
@require_permission("student.view")
@subscription_required
def nutrition():
    return render_template("student/nutrition.html")
