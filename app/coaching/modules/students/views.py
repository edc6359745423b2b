from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.coaching.constants import PAYMENT_STATUSES, PLAN_MONTHS
from app.coaching.db import db_session
from app.coaching.models import User
from app.coaching.modules.progress.service import list_photos, weight_series
from app.coaching.modules.students.service import (
    archive_student,
    invite_student,
    is_student,
    list_students,
    restore_student,
    validate_invite_payload,
)
from app.coaching.modules.subscriptions.service import access_status, update_plan, validate_plan_payload
from app.coaching.modules.workouts.service import active_routines, list_workout_files
from app.coaching.rbac import require_permission

bp = Blueprint("students", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_student_or_404(student_id: int) -> User:
    student = db_session().get(User, student_id)
    if not is_student(student):
        abort(404)
    return student


# ---------- List ----------
@bp.get("/")
@require_permission("students.view")
def students_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    show_archived = request.args.get("archived") == "1"
    students = list_students(s, search=search, include_archived=show_archived)
    return render_template(
        "admin/students/list.html",
        students=students,
        search=search,
        show_archived=show_archived,
        statuses={st.id: access_status(st) for st in students},
    )


# ---------- New ----------
@bp.get("/new")
@require_permission("students.invite")
def students_new_get():
    return render_template("admin/students/new.html")


@bp.post("/new")
@require_permission("students.invite")
def students_new_post():
    s = db_session()
    u = _current_user()
    try:
        email, full_name = validate_invite_payload(request.form)
        student, temp_password = invite_student(
            s,
            email,
            full_name,
            u,
            temp_password_length=int(current_app.config.get("TEMP_PASSWORD_LENGTH") or 12),
        )
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("students.students_new_get"))

    current_app.logger.info("Student invited user_id=%s by=%s", student.id, u.email)
    flash(f"Student created. Temporary password: {temp_password}", "success")
    return redirect(url_for("students.student_detail", student_id=student.id))


# ---------- Detail ----------
@bp.get("/<int:student_id>")
@require_permission("students.view")
def student_detail(student_id: int):
    s = db_session()
    student = _get_student_or_404(student_id)
    return render_template(
        "admin/students/detail.html",
        student=student,
        status=access_status(student),
        photos=list_photos(s, student.id, limit=10),
        weights=weight_series(s, student.id),
        files=list_workout_files(s, student.id),
        routines=active_routines(s, student.id),
        plan_types=list(PLAN_MONTHS),
        payment_statuses=PAYMENT_STATUSES,
    )


@bp.post("/<int:student_id>/plan")
@require_permission("students.edit")
def student_plan_post(student_id: int):
    s = db_session()
    u = _current_user()
    student = _get_student_or_404(student_id)

    payload = {
        "payment_status": request.form.get("payment_status"),
        "plan_type": request.form.get("plan_type"),
        "plan_started_on": request.form.get("plan_started_on"),
    }
    errors = validate_plan_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("students.student_detail", student_id=student.id))

    try:
        update_plan(s, student, payload, u)
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("students.student_detail", student_id=student.id))

    flash(f"Plan updated. Expires on {student.plan_expires_on.isoformat()}.", "success")
    return redirect(url_for("students.student_detail", student_id=student.id))


@bp.post("/<int:student_id>/archive")
@require_permission("students.archive")
def student_archive_post(student_id: int):
    s = db_session()
    u = _current_user()
    student = _get_student_or_404(student_id)
    archive_student(s, student, u)
    s.commit()
    flash(f"{student.display_name} archived.", "success")
    return redirect(url_for("students.students_list"))


@bp.post("/<int:student_id>/restore")
@require_permission("students.archive")
def student_restore_post(student_id: int):
    s = db_session()
    u = _current_user()
    student = _get_student_or_404(student_id)
    restore_student(s, student, u)
    s.commit()
    flash(f"{student.display_name} restored. Update the plan to grant access again.", "success")
    return redirect(url_for("students.student_detail", student_id=student.id))
