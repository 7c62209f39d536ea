"""
Bootstrap seed helpers for roles and the first administrator.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.security import hash_password
from ..models.role import Role
from ..models.user import User


SUPER_ADMIN_ROLE = "Super Admin"
OPERATOR_ROLE = "Operator"
VIEWER_ROLE = "Viewer"

DEFAULT_ROLES = (
    {
        "name": SUPER_ADMIN_ROLE,
        "description": "Full access to every feature",
        "can_view": True,
        "can_edit": True,
        "can_export": True,
        "can_delete": True,
    },
    {
        "name": OPERATOR_ROLE,
        "description": "Records scans, edits vehicles and exports reports",
        "can_view": True,
        "can_edit": True,
        "can_export": True,
        "can_delete": False,
    },
    {
        "name": VIEWER_ROLE,
        "description": "Read-only access",
        "can_view": True,
        "can_edit": False,
        "can_export": False,
        "can_delete": False,
    },
)


def seed_default_roles(db: Session) -> dict[str, Role]:
    """Create missing default roles; existing roles are left untouched."""
    logger = logging.getLogger("auth-seed")
    roles: dict[str, Role] = {}
    created = 0
    for spec in DEFAULT_ROLES:
        role = db.query(Role).filter(func.lower(Role.name) == spec["name"].lower()).first()
        if role is None:
            role = Role(is_active=True, **spec)
            db.add(role)
            created += 1
        roles[spec["name"]] = role
    if created:
        db.commit()
        logger.info("Seeded default roles created=%s", created)
    return roles


def seed_admin_user(db: Session) -> None:
    logger = logging.getLogger("auth-seed")
    username = (os.getenv("DISHUB_ADMIN_USERNAME") or "admin").strip()
    password = (os.getenv("DISHUB_ADMIN_PASSWORD") or "").strip()
    email = (os.getenv("DISHUB_ADMIN_EMAIL") or f"{username}@dishub.go.id").strip().lower()

    if not username:
        logger.warning("Skipping admin seed: empty DISHUB_ADMIN_USERNAME")
        return
    if not password:
        logger.warning("Skipping admin seed: DISHUB_ADMIN_PASSWORD is empty")
        return

    role = seed_default_roles(db)[SUPER_ADMIN_ROLE]
    existing = db.query(User).filter(func.lower(User.username) == username.lower()).first()
    if existing:
        changed = False
        if existing.role_id != role.id:
            existing.role_id = role.id
            changed = True
        if not existing.is_active:
            existing.is_active = True
            changed = True
        if changed:
            db.add(existing)
            db.commit()
        return

    db.add(
        User(
            username=username,
            email=email,
            name="Administrator",
            password_hash=hash_password(password),
            role_id=role.id,
            is_active=True,
        )
    )
    db.commit()
    logger.info("Seeded admin user username=%s", username)
