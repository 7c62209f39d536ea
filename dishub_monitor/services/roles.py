"""
Role management.

Roles are soft-deleted, and only when no user references them.
"""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, DependentRecordError, NotFoundError
from ..models.role import Role
from ..models.user import User
from ..schemas.user import RoleCreate, RoleOut, RoleUpdate
from .aggregation import count_where


_logger = logging.getLogger("roles")

NAME_CONFLICT = "Role with this name already exists"


def serialize_role(role: Role, *, user_count: int | None = None) -> dict:
    out = RoleOut.model_validate(role).dump()
    if user_count is not None:
        out["_count"] = {"users": user_count}
    return out


def _name_taken(db: Session, name: str, *, exclude_id: str | None = None) -> bool:
    query = db.query(Role.id).filter(func.lower(Role.name) == name.lower())
    if exclude_id:
        query = query.filter(Role.id != exclude_id)
    return query.first() is not None


def _get(db: Session, role_id: str) -> Role:
    role = db.get(Role, role_id)
    if role is None:
        raise NotFoundError("Role not found")
    return role


def _user_counts(db: Session) -> dict[str, int]:
    rows = db.query(User.role_id, func.count(User.id)).group_by(User.role_id).all()
    return {role_id: int(count) for role_id, count in rows}


def create_role(db: Session, payload: RoleCreate) -> Role:
    name = payload.name.strip()
    if _name_taken(db, name):
        raise ConflictError(NAME_CONFLICT)
    role = Role(
        name=name,
        description=payload.description,
        can_view=payload.can_view,
        can_edit=payload.can_edit,
        can_export=payload.can_export,
        can_delete=payload.can_delete,
        is_active=True,
    )
    db.add(role)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(NAME_CONFLICT)
    db.refresh(role)
    return role


def list_roles(db: Session) -> list[dict]:
    counts = _user_counts(db)
    roles = db.query(Role).filter(Role.is_active.is_(True)).order_by(Role.name.asc()).all()
    return [serialize_role(r, user_count=counts.get(r.id, 0)) for r in roles]


def get_role(db: Session, role_id: str) -> dict:
    role = _get(db, role_id)
    return serialize_role(role, user_count=count_where(db, User, User.role_id == role.id))


def update_role(db: Session, role_id: str, payload: RoleUpdate) -> Role:
    role = _get(db, role_id)
    data = payload.model_dump(exclude_unset=True)
    name = data.pop("name", None)
    if name is not None:
        name = name.strip()
        if name.lower() != role.name.lower() and _name_taken(db, name, exclude_id=role.id):
            raise ConflictError(NAME_CONFLICT)
        role.name = name
    for key, value in data.items():
        if value is not None:
            setattr(role, key, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(NAME_CONFLICT)
    db.refresh(role)
    return role


def delete_role(db: Session, role_id: str) -> dict:
    role = _get(db, role_id)
    in_use = count_where(db, User, User.role_id == role.id)
    if in_use:
        raise DependentRecordError("Cannot delete role that is being used by users")
    role.is_active = False
    db.commit()
    _logger.info("Role deactivated id=%s name=%s", role.id, role.name)
    return {"message": "Role deleted successfully"}


def role_stats(db: Session) -> dict:
    counts = _user_counts(db)
    roles = db.query(Role).filter(Role.is_active.is_(True)).order_by(Role.name.asc()).all()
    return {
        "totalRoles": len(roles),
        "roles": [
            {
                "id": r.id,
                "name": r.name,
                "description": r.description,
                "userCount": counts.get(r.id, 0),
                "permissions": {
                    "canView": r.can_view,
                    "canEdit": r.can_edit,
                    "canExport": r.can_export,
                    "canDelete": r.can_delete,
                },
            }
            for r in roles
        ],
    }
