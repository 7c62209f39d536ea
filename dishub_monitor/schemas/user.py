"""
Schemas for users, roles and authentication.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from . import ApiModel


class RoleCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=64)
    description: str = Field(..., min_length=1)
    can_view: bool = True
    can_edit: bool = False
    can_export: bool = False
    can_delete: bool = False


class RoleUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=64)
    description: Optional[str] = None
    can_view: Optional[bool] = None
    can_edit: Optional[bool] = None
    can_export: Optional[bool] = None
    can_delete: Optional[bool] = None


class RoleOut(ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    can_view: bool
    can_edit: bool
    can_export: bool
    can_delete: bool
    is_active: bool
    created_at: datetime


class UserCreate(ApiModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6, max_length=256)
    role_id: str


class UserUpdate(ApiModel):
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(default=None, min_length=3, max_length=128)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    password: Optional[str] = Field(default=None, min_length=6, max_length=256)
    role_id: Optional[str] = None
    avatar: Optional[str] = None
    is_active: Optional[bool] = None


class UserOut(ApiModel):
    id: str
    username: str
    email: str
    name: str
    avatar: Optional[str] = None
    role_id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    role: Optional[RoleOut] = None


class LoginIn(ApiModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)


class RegisterIn(ApiModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6, max_length=256)


class ProfileUpdate(ApiModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    avatar: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(default=None, min_length=6, max_length=256)
