from sqlalchemy.orm import Session

from app.models import UserPermission


def get_permissions(db: Session, user_id: str) -> list[str]:
    """Sorted, de-duplicated permission codes granted to a user."""
    results = (
        db.query(UserPermission.code)
        .filter(UserPermission.user_id == user_id)
        .distinct()
        .order_by(UserPermission.code)
        .all()
    )
    return [r[0] for r in results if r[0]]


def grant_permission(db: Session, user_id: str, code: str) -> UserPermission:
    """Grant a permission code; granting twice returns the existing row."""
    existing = (
        db.query(UserPermission)
        .filter(UserPermission.user_id == user_id, UserPermission.code == code)
        .first()
    )
    if existing:
        return existing
    permission = UserPermission(user_id=user_id, code=code)
    db.add(permission)
    db.commit()
    db.refresh(permission)
    return permission


def has_permission(granted: list[str], code: str | list[str]) -> bool:
    """True if any of the requested codes is granted."""
    codes = [code] if isinstance(code, str) else code
    return any(c in granted for c in codes)
