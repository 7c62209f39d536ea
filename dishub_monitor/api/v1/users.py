"""
User administration endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import require_permission
from ...core.db import get_db
from ...core.pagination import PageParams, page_params
from ...schemas.user import UserCreate, UserUpdate
from ...services import users as user_service


router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", status_code=201, dependencies=[Depends(require_permission("edit"))])
def create_user(payload: UserCreate, db: Session = Depends(get_db)) -> dict:
    user = user_service.create_user(db, payload)
    return user_service.serialize_user(user)


@router.get("", dependencies=[Depends(require_permission("view"))])
def list_users(
    search: Optional[str] = Query(None),
    role_id: Optional[str] = Query(None, alias="roleId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> dict:
    params = {
        "search": search,
        "roleId": role_id,
        "isActive": is_active,
        "sortBy": sort_by,
        "sortOrder": sort_order,
    }
    return user_service.list_users(db, params=params, page=page)


@router.get("/stats", dependencies=[Depends(require_permission("view"))])
def user_stats(db: Session = Depends(get_db)) -> dict:
    return user_service.user_stats(db)


@router.get("/{user_id}", dependencies=[Depends(require_permission("view"))])
def get_user(user_id: str, db: Session = Depends(get_db)) -> dict:
    return user_service.get_user(db, user_id)


@router.put("/{user_id}", dependencies=[Depends(require_permission("edit"))])
def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_db)) -> dict:
    user = user_service.update_user(db, user_id, payload)
    return user_service.serialize_user(user)


@router.put("/{user_id}/toggle-active", dependencies=[Depends(require_permission("delete"))])
def toggle_active(user_id: str, db: Session = Depends(get_db)) -> dict:
    user = user_service.toggle_active(db, user_id)
    return user_service.serialize_user(user)


@router.delete("/{user_id}", dependencies=[Depends(require_permission("delete"))])
def delete_user(user_id: str, db: Session = Depends(get_db)) -> dict:
    return user_service.delete_user(db, user_id)
