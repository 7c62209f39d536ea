"""
Authentication endpoints: login, self-registration and the caller's profile.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...core.auth import UserContext, client_info, get_current_user
from ...core.db import get_db
from ...core.security import create_access_token, hash_password, verify_password
from ...models.user import User
from ...schemas.user import LoginIn, ProfileUpdate, RegisterIn
from ...services.activity import STATUS_FAILED, record_activity
from ...services.auth_seed import VIEWER_ROLE, seed_default_roles
from ...services.users import ensure_unique_identity, serialize_user


router = APIRouter(prefix="/api/auth", tags=["auth"])


def _build_login_response(user: User) -> dict:
    role_name = user.role.name if user.role else ""
    token = create_access_token(sub=user.id, username=user.username, role=role_name)
    return {
        "token": token,
        "tokenType": "bearer",
        "user": serialize_user(user),
    }


@router.post("/login")
def login(payload: LoginIn, request: Request, db: Session = Depends(get_db)) -> dict:
    logger = logging.getLogger("auth")
    ip, agent = client_info(request)
    identity = payload.username.strip().lower()
    user = (
        db.query(User)
        .filter(or_(func.lower(User.username) == identity, func.lower(User.email) == identity))
        .first()
    )
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        record_activity(
            db,
            action="Login",
            user_id=user.id if user else None,
            status=STATUS_FAILED,
            ip_address=ip,
            user_agent=agent,
            details=f"Failed login for {identity}",
        )
        logger.warning("Login failed identity=%s ip=%s", identity, ip)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    response = _build_login_response(user)
    record_activity(db, action="Login", user_id=user.id, ip_address=ip, user_agent=agent)
    return response


@router.post("/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)) -> dict:
    username = payload.username.strip()
    if " " in username:
        raise HTTPException(status_code=400, detail="username cannot contain spaces")
    email = str(payload.email).strip().lower()
    ensure_unique_identity(db, username=username, email=email)

    # Self-registration always lands on Viewer; admins assign roles via /api/users.
    role = seed_default_roles(db)[VIEWER_ROLE]

    user = User(
        username=username,
        email=email,
        name=payload.name.strip(),
        password_hash=hash_password(payload.password),
        role_id=role.id,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _build_login_response(user)


@router.get("/profile")
def get_profile(
    db: Session = Depends(get_db),
    current: UserContext = Depends(get_current_user),
) -> dict:
    return serialize_user(db.get(User, current.user_id))


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current: UserContext = Depends(get_current_user),
) -> dict:
    user = db.get(User, current.user_id)
    if payload.email is not None:
        email = str(payload.email).strip().lower()
        if email != user.email:
            ensure_unique_identity(db, email=email, exclude_id=user.id)
            user.email = email
    if payload.name is not None:
        user.name = payload.name.strip()
    if payload.avatar is not None:
        user.avatar = payload.avatar
    if payload.new_password:
        if not payload.current_password or not verify_password(payload.current_password, user.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        user.password_hash = hash_password(payload.new_password)
    db.commit()
    db.refresh(user)
    return serialize_user(user)


@router.post("/logout")
def logout(
    db: Session = Depends(get_db),
    current: UserContext = Depends(get_current_user),
) -> dict:
    record_activity(
        db,
        action="Logout",
        user_id=current.user_id,
        ip_address=current.ip_address,
        user_agent=current.user_agent,
    )
    return {"message": "Logged out successfully"}
