import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.isoaudit.constants import STANDARDS
from app.isoaudit.models import Permission, Role, User
from app.isoaudit.modules.checklist.service import seed_reference_checklist
from scripts._db_utils import script_session

PERMISSIONS = (
    ("admin.view", "Admin: view dashboard"),
    # Companies
    ("companies.create", "Companies: register"),
    # Checklist
    ("checklist.view", "Checklist: view"),
    ("checklist.edit", "Checklist: save evaluations"),
    # Training
    ("training.view", "Training: view"),
    ("training.complete", "Training: mark videos watched"),
    # Implementation templates
    ("implementation.view", "Implementation: view"),
    ("implementation.download", "Implementation: download templates"),
    ("implementation.upload", "Implementation: upload completed templates"),
)

# Auditors do everything except the admin dashboard.
AUDITOR_PERMISSIONS = tuple(key for key, _ in PERMISSIONS if key != "admin.view")


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user and the reference checklists in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@isoaudit.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///isoaudit.db").strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        perms: dict[str, Permission] = {}
        for key, name in PERMISSIONS:
            p = s.query(Permission).filter(Permission.key == key).one_or_none()
            if not p:
                p = Permission(key=key, name=name)
                s.add(p)
            perms[key] = p

        def ensure_role(key: str, name: str, permission_keys) -> Role:
            role = s.query(Role).filter(Role.key == key).one_or_none()
            if not role:
                role = Role(key=key, name=name)
                s.add(role)
            for pk in permission_keys:
                if perms[pk] not in role.permissions:
                    role.permissions.append(perms[pk])
            return role

        role_admin = ensure_role("admin", "Administrator", [key for key, _ in PERMISSIONS])
        ensure_role("auditor", "Auditor", AUDITOR_PERMISSIONS)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(email=admin_email, password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(user)
        if role_admin not in user.roles:
            user.roles.append(role_admin)

        for standard in STANDARDS:
            added = seed_reference_checklist(s, standard)
            print(f"Reference checklist {standard}: {added} item(s) added.")

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
