from __future__ import annotations

from flask import Blueprint, render_template

from app.coaching.db import db_session
from app.coaching.modules.reports.service import status_breakdown, student_counts
from app.coaching.rbac import require_permission

bp = Blueprint("reports", __name__)


@bp.get("/admin/reports")
@require_permission("reports.view")
def index():
    s = db_session()
    return render_template("admin/reports.html", counts=student_counts(s), breakdown=status_breakdown(s))
