# app/api/deps.py
from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.core.rbac import require_any
from app.db.session import get_db
from app.models.user import User
from app.utils.jwt import decode_token

__all__ = ["get_db", "current_user", "require_roles"]


# =========================================================
# AUTH HELPERS
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    raw = _extract_bearer(authorization)
    if not raw:
        raise HTTPException(status_code=401, detail="Missing token")

    payload = decode_token(raw)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid token")

    sub = payload.get("sub")
    if not sub or not str(sub).isdigit():
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = db.get(User, int(sub))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User inactive")
    return user


def require_roles(*roles: str) -> Callable[..., User]:
    """
    Dependency factory: Depends(require_roles("ADMIN", "MANAGER")).
    """

    def _dep(user: User = Depends(current_user)) -> User:
        require_any(user, roles)
        return user

    return _dep
