"""
Role management endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.auth import require_permission
from ...core.db import get_db
from ...schemas.user import RoleCreate, RoleUpdate
from ...services import roles as role_service


router = APIRouter(prefix="/api/roles", tags=["roles"])


@router.post("", status_code=201, dependencies=[Depends(require_permission("delete"))])
def create_role(payload: RoleCreate, db: Session = Depends(get_db)) -> dict:
    role = role_service.create_role(db, payload)
    return role_service.serialize_role(role, user_count=0)


@router.get("", dependencies=[Depends(require_permission("view"))])
def list_roles(db: Session = Depends(get_db)) -> list[dict]:
    return role_service.list_roles(db)


@router.get("/stats", dependencies=[Depends(require_permission("view"))])
def role_stats(db: Session = Depends(get_db)) -> dict:
    return role_service.role_stats(db)


@router.get("/{role_id}", dependencies=[Depends(require_permission("view"))])
def get_role(role_id: str, db: Session = Depends(get_db)) -> dict:
    return role_service.get_role(db, role_id)


@router.put("/{role_id}", dependencies=[Depends(require_permission("delete"))])
def update_role(role_id: str, payload: RoleUpdate, db: Session = Depends(get_db)) -> dict:
    role = role_service.update_role(db, role_id, payload)
    return role_service.serialize_role(role)


@router.delete("/{role_id}", dependencies=[Depends(require_permission("delete"))])
def delete_role(role_id: str, db: Session = Depends(get_db)) -> dict:
    return role_service.delete_role(db, role_id)
