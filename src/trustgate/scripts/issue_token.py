# src/trustgate/scripts/issue_token.py
"""Print a bearer token for a user (local development only)."""

from __future__ import annotations

import argparse
import sys
from datetime import timedelta

from trustgate.core.security import create_access_token
from trustgate.db.session import SessionLocal
from trustgate.models import User
from trustgate.models.user import ROLE_LADDER


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Issue a bearer token for a user.")
    parser.add_argument("user_id", type=int, nargs="?", help="Existing user id")
    parser.add_argument(
        "--create",
        choices=ROLE_LADDER,
        help="Create a new user with this role instead of using user_id",
    )
    parser.add_argument("--name", default=None, help="Display name for --create")
    parser.add_argument("--minutes", type=int, default=None, help="Token lifetime in minutes")
    args = parser.parse_args(argv)

    if args.user_id is None and args.create is None:
        parser.error("either user_id or --create is required")

    db = SessionLocal()
    try:
        if args.create is not None:
            user = User(display_name=args.name, role=args.create)
            db.add(user)
            db.commit()
            db.refresh(user)
            print(f"Created user {user.id} with role {user.role}", file=sys.stderr)
        else:
            user = db.get(User, args.user_id)
            if user is None:
                print(f"User {args.user_id} not found", file=sys.stderr)
                return 1
        user_id = user.id
    finally:
        db.close()

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    print(create_access_token(user_id, expires_delta=expires))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
