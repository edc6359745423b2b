from __future__ import annotations

from itertools import zip_longest

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.coaching.db import db_session
from app.coaching.models import User
from app.coaching.modules.students.service import is_student, list_students
from app.coaching.modules.subscriptions.guard import subscription_required
from app.coaching.modules.workouts.models import Exercise, WorkoutRoutine
from app.coaching.modules.workouts.service import (
    active_routines,
    check_in,
    create_exercise,
    create_routine,
    last_loads,
    list_workout_files,
    log_exercise,
    routine_exercises,
    set_routine_active,
    upload_workout_pdf,
)
from app.coaching.rbac import require_permission

bp = Blueprint("workouts", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _routine_items_from_form() -> list[dict]:
    rows = zip_longest(
        request.form.getlist("exercise_id"),
        request.form.getlist("rest"),
        request.form.getlist("video_url"),
        request.form.getlist("sets"),
        fillvalue="",
    )
    items = []
    for exercise_id, rest, video_url, sets in rows:
        if not (exercise_id or "").strip():
            continue
        items.append({"exercise_id": exercise_id, "rest": rest, "video_url": video_url, "sets": sets})
    return items


# ---------- Coach: overview ----------
@bp.get("/admin/workouts")
@require_permission("routines.manage")
def admin_index():
    s = db_session()
    routines = (
        s.query(WorkoutRoutine)
        .order_by(WorkoutRoutine.created_at.desc(), WorkoutRoutine.id.desc())
        .limit(200)
        .all()
    )
    return render_template("admin/workouts/index.html", routines=routines)


@bp.post("/admin/workouts/upload")
@require_permission("workouts.upload")
def admin_upload_pdf():
    s = db_session()
    u = _current_user()

    student_id = request.form.get("student_id", type=int)
    student = s.get(User, student_id) if student_id else None
    if not is_student(student):
        abort(404)

    f = request.files.get("file")
    if not f or not f.filename:
        flash("Choose a PDF to upload.", "danger")
        return redirect(url_for("students.student_detail", student_id=student.id))

    try:
        wf = upload_workout_pdf(
            s,
            student,
            f.read(),
            f.filename,
            u,
            max_bytes=int(current_app.config.get("MAX_PDF_BYTES") or 20 * 1024 * 1024),
        )
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("students.student_detail", student_id=student.id))

    current_app.logger.info("Workout PDF uploaded student_id=%s file_id=%s", student.id, wf.id)
    flash(f"Workout uploaded ({wf.page_count} page(s)).", "success")
    return redirect(url_for("students.student_detail", student_id=student.id))


# ---------- Coach: routines ----------
@bp.get("/admin/workouts/routines/new")
@require_permission("routines.manage")
def routine_new_get():
    s = db_session()
    students = list_students(s)
    exercises = s.query(Exercise).order_by(Exercise.name.asc()).all()
    return render_template(
        "admin/workouts/routine_new.html",
        students=students,
        exercises=exercises,
        selected_student_id=request.args.get("student_id", type=int),
    )


@bp.post("/admin/workouts/routines/new")
@require_permission("routines.manage")
def routine_new_post():
    s = db_session()
    u = _current_user()

    student_id = request.form.get("student_id", type=int)
    student = s.get(User, student_id) if student_id else None
    if not is_student(student) or not student.is_active:
        flash("Select an active student.", "danger")
        return redirect(url_for("workouts.routine_new_get"))

    try:
        routine = create_routine(s, u, student, request.form.get("name") or "", _routine_items_from_form())
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("workouts.routine_new_get", student_id=student.id))

    flash("Routine created.", "success")
    return redirect(url_for("workouts.routine_detail", routine_id=routine.id))


@bp.get("/admin/workouts/routines/<int:routine_id>")
@require_permission("routines.manage")
def routine_detail(routine_id: int):
    s = db_session()
    routine = s.get(WorkoutRoutine, routine_id)
    if not routine:
        abort(404)
    return render_template(
        "admin/workouts/routine_detail.html",
        routine=routine,
        exercises=routine_exercises(routine),
    )


@bp.post("/admin/workouts/routines/<int:routine_id>/toggle")
@require_permission("routines.manage")
def routine_toggle(routine_id: int):
    s = db_session()
    u = _current_user()
    routine = s.get(WorkoutRoutine, routine_id)
    if not routine:
        abort(404)
    set_routine_active(s, routine, not routine.is_active, u)
    s.commit()
    flash("Routine activated." if routine.is_active else "Routine deactivated.", "success")
    return redirect(url_for("workouts.routine_detail", routine_id=routine.id))


# ---------- Coach: exercise library ----------
@bp.get("/admin/workouts/exercises")
@require_permission("exercises.manage")
def exercises_list():
    s = db_session()
    exercises = s.query(Exercise).order_by(Exercise.name.asc()).all()
    return render_template("admin/workouts/exercises.html", exercises=exercises)


@bp.post("/admin/workouts/exercises")
@require_permission("exercises.manage")
def exercises_create():
    s = db_session()
    u = _current_user()
    try:
        create_exercise(s, request.form.get("name") or "", request.form.get("muscle_group"), u)
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("workouts.exercises_list"))
    flash("Exercise added.", "success")
    return redirect(url_for("workouts.exercises_list"))


# ---------- Student ----------
@bp.get("/student/workouts")
@require_permission("student.view")
@subscription_required
def student_index():
    s = db_session()
    u = _current_user()
    return render_template(
        "student/workouts.html",
        files=list_workout_files(s, u.id),
        routines=active_routines(s, u.id),
    )


@bp.get("/student/workouts/routines/<int:routine_id>")
@require_permission("student.view")
@subscription_required
def student_routine(routine_id: int):
    s = db_session()
    u = _current_user()
    routine = s.get(WorkoutRoutine, routine_id)
    if not routine or routine.student_id != u.id or not routine.is_active:
        abort(404)
    items = routine_exercises(routine)
    loads = last_loads(s, u.id, [int(i["exercise_id"]) for i in items if i.get("exercise_id")])
    return render_template("student/routine.html", routine=routine, exercises=items, last_loads=loads)


@bp.get("/student/workouts/log")
@require_permission("student.view")
@subscription_required
def log_sheet():
    s = db_session()
    u = _current_user()
    exercises = s.query(Exercise).order_by(Exercise.name.asc()).all()
    loads = last_loads(s, u.id, [ex.id for ex in exercises])
    return render_template("student/log.html", exercises=exercises, last_loads=loads)


@bp.post("/student/workouts/log")
@require_permission("student.view")
@subscription_required
def log_sheet_post():
    s = db_session()
    u = _current_user()
    exercise = s.get(Exercise, request.form.get("exercise_id", type=int) or 0)
    if not exercise:
        flash("Select an exercise.", "danger")
        return redirect(url_for("workouts.log_sheet"))

    try:
        log_exercise(s, u, exercise, request.form)
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("workouts.log_sheet"))

    flash(f"{exercise.name} logged.", "success")
    return redirect(url_for("workouts.log_sheet"))


@bp.post("/student/workouts/check-in")
@require_permission("student.view")
@subscription_required
def student_check_in():
    s = db_session()
    u = _current_user()
    routine_id = request.form.get("routine_id", type=int)
    if routine_id:
        routine = s.get(WorkoutRoutine, routine_id)
        if not routine or routine.student_id != u.id:
            abort(404)
    check_in(s, u, routine_id=routine_id)
    s.commit()
    flash("Workout completed. Nice work!", "success")
    return redirect(url_for("dashboard.student_home"))
