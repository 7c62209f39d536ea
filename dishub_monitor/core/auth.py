"""
Bearer-token authentication and permission gates.

``get_current_user`` resolves the token to an active user and loads the
capability flags of their role. ``require_permission`` wraps it into a
dependency that fails closed before the route handler runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from .db import get_db
from .security import TokenError, decode_access_token
from ..models.user import User


PERMISSIONS = ("view", "edit", "export", "delete")


@dataclass
class UserContext:
    user_id: str
    username: str
    name: str
    role: str
    permissions: dict[str, bool] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def can(self, permission: str) -> bool:
        return bool(self.permissions.get(permission))


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def client_info(request: Request) -> tuple[Optional[str], Optional[str]]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",", 1)[0].strip()
    else:
        ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> UserContext:
    token = _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        claims = decode_access_token(token)
    except TokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = str(claims.get("sub") or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token claims")
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    role = user.role
    permissions = role.permissions() if role and role.is_active else {}
    ip, agent = client_info(request)
    return UserContext(
        user_id=user.id,
        username=user.username,
        name=user.name,
        role=role.name if role else "",
        permissions=permissions,
        ip_address=ip,
        user_agent=agent,
    )


def require_permission(permission: str):
    if permission not in PERMISSIONS:
        raise ValueError(f"Unknown permission: {permission}")

    def _dep(user: UserContext = Depends(get_current_user)) -> UserContext:
        if not user.can(permission):
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return _dep
