from __future__ import annotations

from flask import Blueprint, g, render_template

from app.coaching.db import db_session
from app.coaching.modules.rankings.service import (
    checkin_ranking,
    frequency_position,
    frequency_ranking,
    position_in,
)
from app.coaching.rbac import require_permission

bp = Blueprint("rankings", __name__)


@bp.get("/admin/ranking")
@require_permission("students.view")
def admin_ranking():
    s = db_session()
    return render_template(
        "admin/ranking.html",
        checkins=checkin_ranking(s),
        frequency=frequency_ranking(s),
    )


@bp.get("/student/ranking")
@require_permission("student.view")
def student_ranking():
    s = db_session()
    u = g.current_user
    checkins = checkin_ranking(s)
    return render_template(
        "student/ranking.html",
        checkins=checkins,
        frequency=frequency_ranking(s),
        my_checkin_position=position_in(checkins, u.id),
        my_frequency_position=frequency_position(s, u),
    )
