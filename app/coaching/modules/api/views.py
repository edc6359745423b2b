from __future__ import annotations

import logging

from flask import Blueprint, current_app, g, jsonify, request

from app.coaching.db import db_session
from app.coaching.models import User
from app.coaching.modules.students.service import (
    DuplicateEmailError,
    archive_student,
    invite_student,
    is_student,
    validate_invite_payload,
)
from app.coaching.modules.super_admin.service import assign_role
from app.coaching.rbac import user_has_permission

bp = Blueprint("api", __name__)
logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


@bp.errorhandler(ApiError)
def _api_error(e: ApiError):
    return jsonify({"error": e.message}), e.status


def _require_api_permission(permission_key: str, message: str = "Forbidden") -> User:
    user: User | None = getattr(g, "current_user", None)
    if not user or not user.is_active:
        raise ApiError("Unauthorized", 401)
    if not user_has_permission(user, permission_key):
        raise ApiError(message, 403)
    return user


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@bp.post("/admin/invite")
def invite():
    try:
        email, full_name = validate_invite_payload(_json_body())
    except ValueError as e:
        raise ApiError(str(e), 400) from e

    user = _require_api_permission("students.invite")
    s = db_session()
    try:
        student, temp_password = invite_student(
            s,
            email,
            full_name,
            user,
            temp_password_length=int(current_app.config.get("TEMP_PASSWORD_LENGTH") or 12),
        )
        s.commit()
    except DuplicateEmailError as e:
        s.rollback()
        raise ApiError(str(e), 409) from e

    logger.info("Student invited user_id=%s email=%s by=%s", student.id, email, user.email)
    return jsonify(
        {
            "success": True,
            "user_id": student.id,
            "temporary_password": temp_password,
            "message": f"Student {full_name} created. Share the temporary password so they can log in.",
        }
    )


@bp.delete("/admin/delete-student")
def delete_student():
    student_id = request.args.get("id", type=int)
    if not student_id:
        raise ApiError("Student id is required", 400)

    user = _require_api_permission("students.archive")
    s = db_session()
    student = s.get(User, student_id)
    if not is_student(student):
        raise ApiError("Student not found", 404)

    archive_student(s, student, user)
    s.commit()
    logger.info("Student archived user_id=%s by=%s", student.id, user.email)
    return jsonify({"message": "Student archived"})


@bp.post("/super-admin/set-role")
def set_role():
    data = _json_body()
    email = (data.get("email") or "").strip()
    if not email:
        raise ApiError("Email is required", 400)

    user = _require_api_permission("roles.assign", "Only super admins can perform this action")
    s = db_session()
    try:
        target, message = assign_role(s, email, data.get("role"), data.get("full_name"), user)
        s.commit()
    except ValueError as e:
        s.rollback()
        raise ApiError(str(e), 400) from e

    logger.info("Role set user_id=%s role=%s by=%s", target.id, target.primary_role, user.email)
    return jsonify({"success": True, "user_id": target.id, "message": message})
