"""
Seed roles/permissions, the starter exercise library and the super admin
account. Safe to run repeatedly; existing passwords are never overwritten.

Usage:
  python scripts/init_db.py
"""

import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.coaching.constants import DEFAULT_EXERCISES, PAYMENT_PAID, ROLE_SUPER_ADMIN
from app.coaching.models import User
from app.coaching.modules.workouts.models import Exercise
from app.coaching.rbac import ensure_roles
from scripts._db_utils import script_session


def seed_exercises(s) -> int:
    existing = {name.lower() for (name,) in s.query(Exercise.name).all()}
    added = 0
    for name, group in DEFAULT_EXERCISES:
        if name.lower() not in existing:
            s.add(Exercise(name=name, muscle_group=group))
            added += 1
    return added


def seed_only(*, database_url: str | None = None) -> None:
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    with script_session(database_url) as s:
        roles = ensure_roles(s)
        added = seed_exercises(s)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                full_name="Super Admin",
                password_hash=generate_password_hash(admin_password),
                is_active=True,
                payment_status=PAYMENT_PAID,
            )
            s.add(user)
        if roles[ROLE_SUPER_ADMIN] not in user.roles:
            user.roles.append(roles[ROLE_SUPER_ADMIN])

    print("Initialized database (seed_only).")
    print(f"Roles: {', '.join(sorted(roles))}; exercises added: {added}")
    print(f"Super admin email: {admin_email}")
    print("Super admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
