"""
Subscription rules: plan expiration arithmetic and the access check that
decides whether a student may see gated content.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING
from urllib.parse import quote

from app.coaching.audit import record_event
from app.coaching.constants import (
    PAYMENT_OVERDUE,
    PAYMENT_PAID,
    PAYMENT_STATUSES,
    PLAN_MONTHS,
    ROLE_COACH,
    ROLE_SUPER_ADMIN,
)
from app.coaching.utils import parse_date

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.coaching.models import User


@dataclass(frozen=True)
class AccessStatus:
    allowed: bool
    payment_status: str | None
    days_left: int | None
    expired: bool


def add_months(d: date, months: int) -> date:
    """Calendar month arithmetic, clamped to the last day of the target month."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def compute_plan_expiration(start: date, plan_type: str) -> date:
    months = PLAN_MONTHS.get((plan_type or "").strip().lower())
    if months is None:
        raise ValueError(f"Unknown plan type: {plan_type!r}. Must be one of: {', '.join(PLAN_MONTHS)}")
    return add_months(start, months)


def days_until(expires_on: date | None, today: date) -> int | None:
    if expires_on is None:
        return None
    # a plan expiring today has 0 days left
    return (expires_on - today).days


def access_status(user: "User", today: date | None = None) -> AccessStatus:
    """
    Allowed iff the plan has an expiration date that is not in the past and the
    payment status is "paid". A past expiration reports the status as overdue.
    """
    today = today or date.today()
    if user.primary_role in (ROLE_COACH, ROLE_SUPER_ADMIN):
        return AccessStatus(allowed=True, payment_status=user.payment_status, days_left=None, expired=False)

    exp = user.plan_expires_on
    left = days_until(exp, today)
    if exp is not None and exp >= today and user.payment_status == PAYMENT_PAID:
        return AccessStatus(allowed=True, payment_status=PAYMENT_PAID, days_left=left, expired=False)

    expired = exp is not None and exp < today
    status = PAYMENT_OVERDUE if expired else user.payment_status
    return AccessStatus(allowed=False, payment_status=status, days_left=left, expired=expired)


def sync_overdue_status(s: "Session", user: "User", status: AccessStatus) -> bool:
    """Persist the overdue flag for an expired plan. Returns True when the row changed."""
    if not status.expired or user.payment_status == PAYMENT_OVERDUE:
        return False
    old = user.payment_status
    user.payment_status = PAYMENT_OVERDUE
    record_event(
        s,
        actor=None,
        action="subscription.mark_overdue",
        entity=user,
        metadata={"old_status": old, "plan_expires_on": user.plan_expires_on},
    )
    return True


def dashboard_blocked(user: "User", today: date | None = None) -> bool:
    """Dashboard rule: blocked once the plan is past due or flagged overdue."""
    today = today or date.today()
    left = days_until(user.plan_expires_on, today)
    if left is None:
        return False
    return left < 0 or user.payment_status == PAYMENT_OVERDUE


def validate_plan_payload(payload: dict) -> list[str]:
    errors = []
    if not (payload.get("plan_started_on") or "").strip():
        errors.append("Select the plan start date.")
    status = (payload.get("payment_status") or "").strip()
    if status not in PAYMENT_STATUSES:
        errors.append(f"Invalid payment status. Must be one of: {', '.join(PAYMENT_STATUSES)}")
    plan = (payload.get("plan_type") or "").strip()
    if plan not in PLAN_MONTHS:
        errors.append(f"Invalid plan. Must be one of: {', '.join(PLAN_MONTHS)}")
    return errors


def update_plan(s: "Session", student: "User", payload: dict, actor: "User") -> "User":
    """Set status, plan type and start date; expiration follows from the plan length."""
    start = parse_date(payload.get("plan_started_on"))
    if start is None:
        raise ValueError("Select the plan start date.")
    plan_type = payload["plan_type"].strip()
    expires = compute_plan_expiration(start, plan_type)

    changes = {
        "payment_status": {"old": student.payment_status, "new": payload["payment_status"].strip()},
        "plan_type": {"old": student.plan_type, "new": plan_type},
        "plan_started_on": {"old": str(student.plan_started_on), "new": str(start)},
        "plan_expires_on": {"old": str(student.plan_expires_on), "new": str(expires)},
    }
    student.payment_status = payload["payment_status"].strip()
    student.plan_type = plan_type
    student.plan_started_on = start
    student.plan_expires_on = expires

    record_event(
        s,
        actor=actor,
        action="student.plan_update",
        entity=student,
        metadata={"email": student.email, "changes": changes},
    )
    return student


def renewal_link(whatsapp_number: str, message: str) -> str | None:
    number = "".join(ch for ch in (whatsapp_number or "") if ch.isdigit())
    if not number:
        return None
    return f"https://wa.me/{number}?text={quote(message or '')}"