import argparse

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from carmarket.app.db import SessionLocal
from carmarket.app.models import AdminLog, Profile, UserRole
from carmarket.app.models.base import utcnow


def set_role(db: Session, email: str, role: str) -> Profile:
    target = UserRole(role).value
    profile = db.execute(
        select(Profile).where(func.lower(Profile.email) == email.strip().lower())
    ).scalar_one_or_none()
    if profile is None:
        raise SystemExit(f"[promote_admin] no profile with email {email}; the user must sign in once first")
    old = profile.role
    profile.role = target
    profile.updated_at = utcnow()
    db.add(
        AdminLog(
            admin_id="cli",
            action_type="update_user_role",
            table_name="profiles",
            record_id=profile.id,
            changes={"role": {"old": old, "new": target}},
        )
    )
    db.commit()
    return profile


def main() -> None:
    ap = argparse.ArgumentParser(description="Grant or revoke the admin role")
    ap.add_argument("email")
    ap.add_argument("--revoke", action="store_true", help="demote back to normal_user")
    args = ap.parse_args()

    role = UserRole.NORMAL_USER.value if args.revoke else UserRole.ADMIN.value
    with SessionLocal() as db:
        profile = set_role(db, args.email, role)
        print(f"[promote_admin] user={profile.id} email={profile.email} role={profile.role}")


if __name__ == "__main__":
    main()
