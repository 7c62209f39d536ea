"""
User administration: create, list, update, toggle and soft delete.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..core.errors import BadRequestError, ConflictError, DependentRecordError, NotFoundError
from ..core.pagination import PageParams, page_envelope, paginate
from ..core.security import hash_password
from ..models.report import Report
from ..models.role import Role
from ..models.scan import Scan
from ..models.user import User
from ..schemas.user import UserCreate, UserOut, UserUpdate
from .aggregation import count_where
from .filters import build_filter, compile_predicate


_logger = logging.getLogger("users")

SORT_FIELDS = {
    "createdAt": User.created_at,
    "updatedAt": User.updated_at,
    "username": User.username,
    "name": User.name,
    "email": User.email,
}


def serialize_user(user: User) -> dict:
    return UserOut.model_validate(user).dump()


def _get(db: Session, user_id: str) -> User:
    user = db.query(User).options(joinedload(User.role)).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def _require_active_role(db: Session, role_id: str) -> Role:
    role = db.get(Role, role_id)
    if role is None or not role.is_active:
        raise BadRequestError("Invalid role ID")
    return role


def ensure_unique_identity(
    db: Session,
    *,
    username: Optional[str] = None,
    email: Optional[str] = None,
    exclude_id: Optional[str] = None,
) -> None:
    if username:
        query = db.query(User.id).filter(func.lower(User.username) == username.lower())
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("Username already exists")
    if email:
        query = db.query(User.id).filter(func.lower(User.email) == email.lower())
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("Email already exists")


def _commit_identity(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Username or email already exists")


def create_user(db: Session, payload: UserCreate) -> User:
    username = payload.username.strip()
    email = str(payload.email).strip().lower()
    ensure_unique_identity(db, username=username, email=email)
    role = _require_active_role(db, payload.role_id)
    user = User(
        username=username,
        email=email,
        name=payload.name.strip(),
        password_hash=hash_password(payload.password),
        role_id=role.id,
        is_active=True,
    )
    db.add(user)
    _commit_identity(db)
    db.refresh(user)
    _logger.info("User created username=%s role=%s", username, role.name)
    return user


def list_users(db: Session, *, params: Mapping[str, Any], page: PageParams) -> dict:
    predicate = build_filter("user", params)
    query = db.query(User).options(joinedload(User.role)).filter(compile_predicate(User, predicate))
    is_active = params.get("isActive")
    if is_active is not None:
        query = query.filter(User.is_active.is_(bool(is_active)))
    column = SORT_FIELDS.get(params.get("sortBy") or "createdAt", User.created_at)
    order = column.asc() if (params.get("sortOrder") or "desc").lower() == "asc" else column.desc()
    rows, total = paginate(query.order_by(order, User.id.asc()), page)
    return page_envelope([serialize_user(u) for u in rows], total=total, params=page)


def get_user(db: Session, user_id: str) -> dict:
    return serialize_user(_get(db, user_id))


def update_user(db: Session, user_id: str, payload: UserUpdate) -> User:
    user = _get(db, user_id)
    data = payload.model_dump(exclude_unset=True)

    username = data.pop("username", None)
    email = data.pop("email", None)
    if email is not None:
        email = str(email).strip().lower()
    ensure_unique_identity(
        db,
        username=username if username and username != user.username else None,
        email=email if email and email != user.email else None,
        exclude_id=user.id,
    )
    if username:
        user.username = username.strip()
    if email:
        user.email = email

    role_id = data.pop("role_id", None)
    if role_id:
        user.role_id = _require_active_role(db, role_id).id

    password = data.pop("password", None)
    if password:
        user.password_hash = hash_password(password)

    for key, value in data.items():
        if value is not None:
            setattr(user, key, value)

    _commit_identity(db)
    db.refresh(user)
    return user


def toggle_active(db: Session, user_id: str) -> User:
    user = _get(db, user_id)
    user.is_active = not user.is_active
    db.commit()
    db.refresh(user)
    _logger.info("User active toggled id=%s is_active=%s", user.id, user.is_active)
    return user


def delete_user(db: Session, user_id: str) -> dict:
    user = _get(db, user_id)
    owned = count_where(db, Scan, Scan.user_id == user.id) + count_where(db, Report, Report.generated_by == user.id)
    if owned:
        raise DependentRecordError(
            "Cannot delete user with associated data. Consider deactivating the user instead."
        )
    user.is_active = False
    db.commit()
    return {"message": "User deleted successfully"}


def user_stats(db: Session) -> dict:
    active = User.is_active.is_(True)
    rows = (
        db.query(Role.name, func.count(User.id))
        .outerjoin(User, (User.role_id == Role.id) & active)
        .filter(Role.is_active.is_(True))
        .group_by(Role.id, Role.name)
        .order_by(Role.name.asc())
        .all()
    )
    recent = (
        db.query(User)
        .options(joinedload(User.role))
        .filter(active)
        .order_by(User.created_at.desc())
        .limit(5)
        .all()
    )
    return {
        "totalUsers": count_where(db, User, active),
        "usersByRole": [{"roleName": name, "userCount": int(count)} for name, count in rows],
        "recentUsers": [
            {
                "id": u.id,
                "username": u.username,
                "name": u.name,
                "email": u.email,
                "createdAt": u.created_at,
                "role": {"name": u.role.name} if u.role else None,
            }
            for u in recent
        ],
    }
