#!/usr/bin/env python3
"""Create or update a console operator (idempotent).

Usage:
  python scripts/create_operator.py --email ops@example.com --password secret --api-token <token>
  python scripts/create_operator.py --email ops@example.com --role admin
"""

import sys
import os
import argparse
from pathlib import Path

from werkzeug.security import generate_password_hash

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.console.models import Role, User
from scripts._db_utils import script_session
from scripts.init_db import DEFAULT_DB_URL


def upsert_operator(
    db_url: str,
    *,
    email: str,
    password: str | None = None,
    api_token: str | None = None,
    display_name: str | None = None,
    role_key: str = "operator",
) -> str:
    email = email.strip().lower()
    with script_session(db_url) as s:
        role = s.query(Role).filter(Role.key == role_key).one_or_none()
        if not role:
            return f"Role not found: {role_key}. Run python scripts/init_db.py first."
        user = s.query(User).filter(User.email.ilike(email)).one_or_none()
        created = user is None
        if created:
            if not password:
                return "A password is required to create an operator."
            user = User(email=email, password_hash=generate_password_hash(password), is_active=True)
            s.add(user)
        elif password:
            user.password_hash = generate_password_hash(password)
        if api_token:
            user.api_token = api_token
        if display_name:
            user.display_name = display_name
        if role not in (user.roles or []):
            user.roles.append(role)
    return f"{'Created' if created else 'Updated'} operator {email} (role={role_key})"


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="Operator email")
    parser.add_argument("--password", help="Login password (required for new operators)")
    parser.add_argument("--api-token", help="Platform bearer token forwarded on API calls")
    parser.add_argument("--display-name")
    parser.add_argument("--role", default="operator", help="Console role key (operator or admin)")
    args = parser.parse_args()

    db_url = (os.environ.get("DATABASE_URL") or DEFAULT_DB_URL).strip()
    print(
        upsert_operator(
            db_url,
            email=args.email,
            password=args.password,
            api_token=args.api_token,
            display_name=args.display_name,
            role_key=args.role,
        )
    )


if __name__ == "__main__":
    main()
