import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.console.models import Permission, Role, User
from scripts._db_utils import script_session

DEFAULT_DB_URL = "sqlite:///console.db"


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin operator in an idempotent way.
    Does NOT overwrite an existing admin's password. The platform token is only
    filled in when the admin has none yet.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_token = (os.environ.get("ADMIN_API_TOKEN") or "").strip() or None

    db_url = (database_url or os.environ.get("DATABASE_URL") or DEFAULT_DB_URL).strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        def ensure_perm(key: str, name: str) -> Permission:
            p = s.query(Permission).filter(Permission.key == key).one_or_none()
            if not p:
                p = Permission(key=key, name=name)
                s.add(p)
            return p

        def ensure_role(key: str, name: str) -> Role:
            r = s.query(Role).filter(Role.key == key).one_or_none()
            if not r:
                r = Role(key=key, name=name)
                s.add(r)
            return r

        p_console_view = ensure_perm("console.view", "Console: view shell")
        p_audit_view = ensure_perm("audit.view", "Audit: view trail")
        p_users_manage = ensure_perm("users.manage", "Users: manage operators")

        role_admin = ensure_role("admin", "Administrator")
        for p in (p_console_view, p_audit_view, p_users_manage):
            if p not in role_admin.permissions:
                role_admin.permissions.append(p)

        role_operator = ensure_role("operator", "Operator")
        if p_console_view not in role_operator.permissions:
            role_operator.permissions.append(p_console_view)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(email=admin_email, password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(user)
        if admin_token and not user.api_token:
            user.api_token = admin_token
        if role_admin not in user.roles:
            user.roles.append(role_admin)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
