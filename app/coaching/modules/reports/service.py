from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func

from app.coaching.constants import PAYMENT_PAID, PAYMENT_STATUSES
from app.coaching.models import User
from app.coaching.modules.students.service import students_query

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def student_counts(s: "Session") -> dict[str, int]:
    """Non-archived students: total, active (paid) and delinquent (anything else)."""
    total = students_query(s).count()
    active = students_query(s).filter(User.payment_status == PAYMENT_PAID).count()
    return {"total": total, "active": active, "delinquent": total - active}


def status_breakdown(s: "Session") -> dict[str, int]:
    rows = (
        students_query(s)
        .with_entities(User.payment_status, func.count(User.id))
        .group_by(User.payment_status)
        .all()
    )
    out = {status: 0 for status in PAYMENT_STATUSES}
    for status, n in rows:
        out[status] = int(n)
    return out
