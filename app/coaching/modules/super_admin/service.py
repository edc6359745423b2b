from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from werkzeug.security import generate_password_hash

from app.coaching.audit import record_event
from app.coaching.constants import PAYMENT_PAID, ROLE_COACH, ROLE_PERMISSIONS
from app.coaching.models import User
from app.coaching.rbac import set_user_role
from app.coaching.security import unusable_password
from app.coaching.modules.students.service import find_user_by_email, normalize_email

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def assign_role(
    s: "Session",
    email: str,
    role_key: str | None,
    full_name: str | None,
    actor: User,
) -> tuple[User, str]:
    """
    Give `email` the single role `role_key` (default coach). Unknown emails get
    a pre-created profile with an unusable password. Returns (user, message).
    """
    email = normalize_email(email)
    if not email:
        raise ValueError("Email is required")
    role_key = (role_key or ROLE_COACH).strip().lower()
    if role_key not in ROLE_PERMISSIONS:
        raise ValueError(f"Invalid role. Must be one of: {', '.join(ROLE_PERMISSIONS)}")
    full_name = (full_name or "").strip()

    user = find_user_by_email(s, email)
    created = user is None
    old_role = None
    if created:
        user = User(
            email=email,
            full_name=full_name or email.split("@")[0],
            password_hash=generate_password_hash(unusable_password()),
            is_active=True,
            is_archived=False,
            payment_status=PAYMENT_PAID,
        )
        s.add(user)
        message = f"Invite created for {email}. Profile pre-created as {role_key}."
    else:
        old_role = user.primary_role
        if full_name:
            user.full_name = full_name
        message = f"User {email} updated to {role_key}"

    set_user_role(s, user, role_key)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="user.set_role",
        entity=user,
        metadata={"email": email, "old_role": old_role, "new_role": role_key, "created": created},
    )
    return user, message
