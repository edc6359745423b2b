from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g, render_template

from app.coaching.db import db_session
from app.coaching.models import User
from app.coaching.modules.subscriptions.service import AccessStatus, access_status, renewal_link, sync_overdue_status


def check_subscription(user: User) -> AccessStatus:
    """Access check for the current request; an expired plan is flagged overdue on the way."""
    status = access_status(user)
    if status.allowed:
        return status
    s = db_session()
    if sync_overdue_status(s, user, status):
        s.commit()
        current_app.logger.info("Marked subscription overdue user_id=%s", user.id)
    return status


def subscription_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    """
    Blocks gated student content unless the subscription is active.
    Must be stacked under require_permission/require_login so a user is loaded.
    """

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        status = check_subscription(g.current_user)
        if status.allowed:
            g.subscription = status
            return fn(*args, **kwargs)

        link = renewal_link(
            current_app.config.get("COACH_WHATSAPP_NUMBER", ""),
            current_app.config.get("RENEWAL_MESSAGE", ""),
        )
        return render_template("student/blocked.html", status=status, renewal_link=link), 402

    return wrapped
