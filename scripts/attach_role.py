#!/usr/bin/env python3
"""Give a user a single role (idempotent).

Usage:
  python scripts/attach_role.py --email coach@example.com --role coach
  python scripts/attach_role.py --email coach@example.com --role coach --password "s3cret!"
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from werkzeug.security import generate_password_hash

from app.coaching.constants import ROLE_COACH, ROLE_PERMISSIONS
from app.coaching.models import User
from app.coaching.rbac import set_user_role
from scripts._db_utils import script_session


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--role", default=ROLE_COACH, choices=sorted(ROLE_PERMISSIONS), help="Role key")
    parser.add_argument("--password", default=None, help="Also set a new password")
    args = parser.parse_args()

    with script_session() as s:
        user = s.query(User).filter(User.email == args.email.strip().lower()).one_or_none()
        if not user:
            print(f"User not found: {args.email}")
            sys.exit(1)
        if args.password:
            user.password_hash = generate_password_hash(args.password)
            print(f"Password updated for {args.email}")
        if user.role_keys == {args.role}:
            print(f"User already has role {args.role}: {args.email}")
            return
        set_user_role(s, user, args.role)
    print(f"Role {args.role} set for {args.email}")


if __name__ == "__main__":
    main()
