from __future__ import annotations

from typing import Any, Iterable, Optional

from fastapi import HTTPException, status

ADMIN = "ADMIN"
MANAGER = "MANAGER"
ANALYST = "ANALYST"

# route gates
EDITORS = (ADMIN, MANAGER)
LEDGER_READERS = (ADMIN, ANALYST)
REPORT_READERS = (ADMIN, MANAGER, ANALYST)


def _role(user: Any) -> str:
    v = getattr(user, "role", None)
    return v.strip().upper() if isinstance(v, str) else ""


def is_admin_user(user: Any) -> bool:
    return _role(user) == ADMIN


def has_role(user: Any, roles: Iterable[str]) -> bool:
    """
    ADMIN passes every gate.
    """
    if not user:
        return False
    if is_admin_user(user):
        return True
    wanted = {r.strip().upper() for r in roles if r}
    return _role(user) in wanted


def require_any(user: Any, roles: Iterable[str], *, message: Optional[str] = None) -> None:
    """
    Raise 403 if the user's role is not one of 'roles'.
    """
    if has_role(user, roles):
        return

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=message or "You do not have permission to perform this action.",
    )
