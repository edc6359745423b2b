from __future__ import annotations

from typing import TYPE_CHECKING

from app.coaching.models import User
from app.coaching.modules.students.service import students_query

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

RANKING_LIMIT = 200


def checkin_ranking(s: "Session", limit: int = RANKING_LIMIT) -> list[User]:
    """Most recent check-in first; students who never checked in go last."""
    return (
        students_query(s)
        .order_by(User.last_checkin_at.is_(None), User.last_checkin_at.desc(), User.id.asc())
        .limit(limit)
        .all()
    )


def frequency_ranking(s: "Session", limit: int = RANKING_LIMIT) -> list[User]:
    return (
        students_query(s)
        .order_by(User.training_frequency.desc(), User.id.asc())
        .limit(limit)
        .all()
    )


def position_in(ranking: list[User], user_id: int) -> int | None:
    """1-based position of the user in an ordered ranking."""
    for i, u in enumerate(ranking, start=1):
        if u.id == user_id:
            return i
    return None


def frequency_position(s: "Session", user: User) -> int:
    """Ties share a position: 1 + number of students with strictly more sessions."""
    ahead = (
        students_query(s)
        .filter(User.training_frequency > (user.training_frequency or 0))
        .count()
    )
    return ahead + 1
