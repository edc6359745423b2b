from __future__ import annotations

import io
import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING

import pdfplumber
from sqlalchemy import func

from app.coaching.audit import record_event
from app.coaching.utils import file_digest_and_bytes, sanitize_upload_filename, timestamped_key

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.coaching.models import User
    from app.coaching.modules.workouts.models import Exercise, ExerciseLog, WorkoutFile, WorkoutRoutine, WorkoutSession

logger = logging.getLogger(__name__)

DEFAULT_REST = "1:30"
DEFAULT_SET_COUNT = 3
DEFAULT_REPS = 12


# ---------- PDFs ----------
def read_pdf_page_count(pdf_bytes: bytes) -> int:
    """Open the PDF to make sure it is readable; returns its page count."""
    if not pdf_bytes.startswith(b"%PDF"):
        raise ValueError("File is not a PDF.")
    try:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            pages = len(pdf.pages)
    except Exception as e:
        logger.warning("PDF open failed: %s", e)
        raise ValueError("PDF could not be read.") from e
    if pages < 1:
        raise ValueError("PDF has no pages.")
    return pages


def upload_workout_pdf(
    s: "Session",
    student: "User",
    file_bytes: bytes,
    filename: str,
    user: "User",
    *,
    max_bytes: int,
) -> "WorkoutFile":
    from flask import current_app
    from app.coaching.storage import storage_from_config
    from app.coaching.modules.workouts.models import WorkoutFile

    safe_name = sanitize_upload_filename(filename, default="workout.pdf")
    if not safe_name.lower().endswith(".pdf"):
        raise ValueError("Only PDF files are accepted.")
    if not file_bytes:
        raise ValueError("The file is empty.")
    if len(file_bytes) > max_bytes:
        raise ValueError(f"PDF too large. Maximum is {max_bytes // (1024 * 1024)}MB.")

    page_count = read_pdf_page_count(file_bytes)
    sha256, size_bytes = file_digest_and_bytes(file_bytes)
    storage_key = timestamped_key(f"workouts/{student.id}", safe_name)

    storage = storage_from_config(current_app.config)
    storage.put_bytes(storage_key, file_bytes, content_type="application/pdf")

    wf = WorkoutFile(
        student_id=student.id,
        storage_key=storage_key,
        original_filename=safe_name,
        content_type="application/pdf",
        sha256=sha256,
        size_bytes=size_bytes,
        page_count=page_count,
        uploaded_by_user_id=user.id,
    )
    s.add(wf)
    s.flush()

    record_event(
        s,
        actor=user,
        action="workout_file.upload",
        entity=wf,
        metadata={"student_id": student.id, "filename": safe_name, "sha256": sha256, "pages": page_count},
    )
    return wf


def list_workout_files(s: "Session", student_id: int) -> list["WorkoutFile"]:
    from app.coaching.modules.workouts.models import WorkoutFile

    return (
        s.query(WorkoutFile)
        .filter(WorkoutFile.student_id == student_id)
        .order_by(WorkoutFile.uploaded_at.desc(), WorkoutFile.id.desc())
        .all()
    )


# ---------- Exercise library ----------
def create_exercise(s: "Session", name: str, muscle_group: str | None, user: "User") -> "Exercise":
    from app.coaching.modules.workouts.models import Exercise

    name = (name or "").strip()
    if not name:
        raise ValueError("Exercise name is required.")
    exists = s.query(Exercise).filter(func.lower(Exercise.name) == name.lower()).first()
    if exists:
        raise ValueError("An exercise with this name already exists.")

    ex = Exercise(name=name, muscle_group=(muscle_group or "").strip() or None)
    s.add(ex)
    s.flush()
    record_event(
        s,
        actor=user,
        action="exercise.create",
        entity=ex,
        metadata={"name": ex.name, "muscle_group": ex.muscle_group},
    )
    return ex


# ---------- Routines ----------
def parse_sets_text(raw: str | None) -> list[dict]:
    """
    Parse "12x20, 10x25" (reps x load kg) into ordered set definitions.
    A bare number is reps at 0 kg. Blank gives the default 3 x 12 at 0 kg.
    """
    raw = (raw or "").strip()
    if not raw:
        return [{"order": i + 1, "load_kg": 0.0, "reps": DEFAULT_REPS} for i in range(DEFAULT_SET_COUNT)]

    sets = []
    for i, chunk in enumerate(p.strip() for p in raw.split(",") if p.strip()):
        reps_part, _, load_part = chunk.lower().partition("x")
        try:
            reps = int(reps_part.strip())
            load = float(load_part.strip().replace("kg", "") or 0)
        except ValueError as e:
            raise ValueError(f"Invalid set definition: {chunk!r}. Use REPSxLOAD, e.g. 12x20.") from e
        if reps <= 0 or load < 0:
            raise ValueError(f"Invalid set definition: {chunk!r}.")
        sets.append({"order": i + 1, "load_kg": load, "reps": reps})
    return sets


def build_routine_config(s: "Session", items: list[dict]) -> list[dict]:
    """
    Turn form items ({exercise_id, rest, video_url, sets}) into the stored
    structure. Each exercise may appear only once.
    """
    from app.coaching.modules.workouts.models import Exercise

    if not items:
        raise ValueError("Add at least one exercise to the routine.")

    seen: set[int] = set()
    config = []
    for item in items:
        try:
            exercise_id = int(item.get("exercise_id"))
        except (TypeError, ValueError) as e:
            raise ValueError("Invalid exercise selection.") from e
        if exercise_id in seen:
            raise ValueError("This exercise was already added to the routine.")
        seen.add(exercise_id)

        ex = s.get(Exercise, exercise_id)
        if ex is None:
            raise ValueError(f"Exercise {exercise_id} not found.")
        config.append(
            {
                "exercise_id": ex.id,
                "name": ex.name,
                "rest": (item.get("rest") or "").strip() or DEFAULT_REST,
                "video_url": (item.get("video_url") or "").strip(),
                "sets": parse_sets_text(item.get("sets")),
            }
        )
    return config


def create_routine(
    s: "Session",
    coach: "User",
    student: "User",
    name: str,
    items: list[dict],
) -> "WorkoutRoutine":
    from app.coaching.modules.workouts.models import WorkoutRoutine

    name = (name or "").strip()
    if not name:
        raise ValueError("Routine name is required.")
    if student.is_archived:
        raise ValueError("Cannot assign a routine to an archived student.")

    config = build_routine_config(s, items)
    routine = WorkoutRoutine(
        coach_id=coach.id,
        student_id=student.id,
        name=name,
        config_json=json.dumps(config),
        is_active=True,
    )
    s.add(routine)
    s.flush()

    record_event(
        s,
        actor=coach,
        action="routine.create",
        entity=routine,
        metadata={"student_id": student.id, "name": name, "exercise_count": len(config)},
    )
    return routine


def routine_exercises(routine: "WorkoutRoutine") -> list[dict]:
    try:
        value = json.loads(routine.config_json or "[]")
    except json.JSONDecodeError:
        logger.warning("Routine %s has invalid config_json", routine.id)
        return []
    return value if isinstance(value, list) else []


def set_routine_active(s: "Session", routine: "WorkoutRoutine", active: bool, user: "User") -> None:
    routine.is_active = active
    record_event(
        s,
        actor=user,
        action="routine.activate" if active else "routine.deactivate",
        entity=routine,
        metadata={"student_id": routine.student_id},
    )


def active_routines(s: "Session", student_id: int) -> list["WorkoutRoutine"]:
    from app.coaching.modules.workouts.models import WorkoutRoutine

    return (
        s.query(WorkoutRoutine)
        .filter(WorkoutRoutine.student_id == student_id, WorkoutRoutine.is_active.is_(True))
        .order_by(WorkoutRoutine.created_at.desc(), WorkoutRoutine.id.desc())
        .all()
    )


# ---------- Exercise logs ----------
def last_loads(s: "Session", user_id: int, exercise_ids: list[int]) -> dict[int, float | None]:
    """Most recent logged load per exercise (None when never logged)."""
    from app.coaching.modules.workouts.models import ExerciseLog

    out: dict[int, float | None] = {ex_id: None for ex_id in exercise_ids}
    if not exercise_ids:
        return out
    logs = (
        s.query(ExerciseLog)
        .filter(ExerciseLog.user_id == user_id, ExerciseLog.exercise_id.in_(exercise_ids))
        .order_by(ExerciseLog.created_at.desc(), ExerciseLog.id.desc())
        .all()
    )
    for log in logs:
        if out.get(log.exercise_id) is None:
            out[log.exercise_id] = log.load_kg
    return out


def log_exercise(s: "Session", user: "User", exercise: "Exercise", payload: dict) -> "ExerciseLog":
    from app.coaching.modules.workouts.models import ExerciseLog

    try:
        sets = int(str(payload.get("sets") or "0").strip())
        reps = int(str(payload.get("reps") or "0").strip())
        load = float(str(payload.get("load_kg") or "0").strip().replace(",", "."))
    except ValueError as e:
        raise ValueError("Fill in sets, reps and load correctly.") from e
    if sets <= 0 or reps <= 0 or load <= 0:
        raise ValueError("Fill in sets, reps and load correctly.")

    log = ExerciseLog(user_id=user.id, exercise_id=exercise.id, sets=sets, reps=reps, load_kg=load)
    s.add(log)
    s.flush()
    record_event(
        s,
        actor=user,
        action="exercise_log.create",
        entity=log,
        metadata={"exercise_id": exercise.id, "sets": sets, "reps": reps, "load_kg": load},
    )
    return log


# ---------- Check-in ----------
def check_in(s: "Session", student: "User", routine_id: int | None = None, now: datetime | None = None) -> "WorkoutSession":
    """Record a completed workout and bump the ranking counters."""
    from app.coaching.modules.workouts.models import WorkoutSession

    now = now or datetime.utcnow()
    session_row = WorkoutSession(student_id=student.id, routine_id=routine_id, completed_at=now)
    s.add(session_row)
    student.last_checkin_at = now
    student.training_frequency = (student.training_frequency or 0) + 1
    s.flush()

    record_event(
        s,
        actor=student,
        action="workout.check_in",
        entity=session_row,
        metadata={"routine_id": routine_id, "training_frequency": student.training_frequency},
    )
    return session_row
