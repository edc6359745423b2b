from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from sqlalchemy import or_
from werkzeug.security import generate_password_hash

from app.coaching.audit import record_event
from app.coaching.constants import PAYMENT_PAID, PAYMENT_PENDING, ROLE_LABELS, ROLE_STUDENT
from app.coaching.models import Role, User
from app.coaching.rbac import set_user_role
from app.coaching.security import generate_temporary_password

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
STUDENT_LIST_LIMIT = 200


class DuplicateEmailError(ValueError):
    def __init__(self, existing: User):
        self.existing = existing
        label = ROLE_LABELS.get(existing.primary_role or ROLE_STUDENT, "Student")
        super().__init__(f"This email is already registered as {label}")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def find_user_by_email(s: "Session", email: str) -> User | None:
    return s.query(User).filter(User.email == normalize_email(email)).one_or_none()


def is_student(user: User | None) -> bool:
    return bool(user) and user.primary_role == ROLE_STUDENT


def students_query(s: "Session", include_archived: bool = False) -> "Query":
    q = s.query(User).join(User.roles).filter(Role.key == ROLE_STUDENT)
    if not include_archived:
        q = q.filter(User.is_archived.is_(False))
    return q


def list_students(s: "Session", search: str = "", include_archived: bool = False) -> list[User]:
    q = students_query(s, include_archived=include_archived)
    search = (search or "").strip()
    if search:
        # literal substring match: escape LIKE wildcards typed by the coach
        escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        like = f"%{escaped}%"
        q = q.filter(or_(User.full_name.ilike(like, escape="\\"), User.email.ilike(like, escape="\\")))
    return q.order_by(User.created_at.desc(), User.id.desc()).limit(STUDENT_LIST_LIMIT).all()


def validate_invite_payload(payload: dict) -> tuple[str, str]:
    """Returns (email, full_name) or raises ValueError."""
    email = normalize_email(payload.get("email"))
    full_name = (payload.get("full_name") or "").strip()
    if not email or not full_name:
        raise ValueError("Name and email are required")
    if not is_valid_email(email):
        raise ValueError("Invalid email format")
    return email, full_name


def invite_student(
    s: "Session",
    email: str,
    full_name: str,
    actor: User,
    *,
    temp_password_length: int = 12,
) -> tuple[User, str]:
    """
    Create a paid, active student account with a temporary password.
    Returns (user, temporary_password); the password is never stored in clear.
    """
    email = normalize_email(email)
    existing = find_user_by_email(s, email)
    if existing is not None:
        raise DuplicateEmailError(existing)

    temp_password = generate_temporary_password(temp_password_length)
    user = User(
        email=email,
        full_name=full_name,
        password_hash=generate_password_hash(temp_password),
        is_active=True,
        is_archived=False,
        payment_status=PAYMENT_PAID,
    )
    s.add(user)
    set_user_role(s, user, ROLE_STUDENT)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="student.invite",
        entity=user,
        metadata={"email": email, "full_name": full_name},
    )
    return user, temp_password


def archive_student(s: "Session", student: User, actor: User) -> None:
    """Soft delete: hide the student and revoke access, keep all history."""
    old_status = student.payment_status
    student.is_archived = True
    student.payment_status = PAYMENT_PENDING
    record_event(
        s,
        actor=actor,
        action="student.archive",
        entity=student,
        metadata={"email": student.email, "old_payment_status": old_status},
    )


def restore_student(s: "Session", student: User, actor: User) -> None:
    student.is_archived = False
    record_event(
        s,
        actor=actor,
        action="student.restore",
        entity=student,
        metadata={"email": student.email},
    )
