"""
Seed demo users and vehicles for local usage.
"""

from __future__ import annotations

from datetime import timedelta
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.security import hash_password
from ..core.timeutil import now_local
from ..models.user import User
from ..models.vehicle import TAX_INACTIVE, Vehicle
from .auth_seed import OPERATOR_ROLE, VIEWER_ROLE, seed_default_roles


DEFAULT_SEED_PATH = Path(__file__).resolve().parents[1] / "data" / "seed_vehicles.json"

DEMO_USERS = (
    ("operator", "Petugas Lapangan", OPERATOR_ROLE),
    ("viewer", "Staf Monitoring", VIEWER_ROLE),
)


def _load_seed(path: Path) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        return data
    return []


def seed_demo_users(db: Session) -> int:
    """Create the operator and viewer demo accounts when missing.

    Returns number of users inserted.
    """
    password = os.getenv("DISHUB_DEMO_PASSWORD") or "dishub123"
    roles = seed_default_roles(db)
    count = 0
    for username, name, role_name in DEMO_USERS:
        exists = db.query(User.id).filter(func.lower(User.username) == username).first()
        if exists:
            continue
        db.add(
            User(
                username=username,
                email=f"{username}@dishub.go.id",
                name=name,
                password_hash=hash_password(password),
                role_id=roles[role_name].id,
                is_active=True,
            )
        )
        count += 1
    if count:
        db.commit()
    return count


def seed_vehicles(db: Session, seed_path: Path = DEFAULT_SEED_PATH) -> int:
    """
    Seed sample vehicles if the registry is empty.

    ``taxExpiryDays`` is relative to now so the demo always has vehicles in
    every compliance class. Returns number of vehicles inserted.
    """
    existing = db.query(func.count(Vehicle.id)).scalar() or 0
    if existing > 0:
        return 0
    if not seed_path.exists():
        return 0
    now = now_local()
    count = 0
    for item in _load_seed(seed_path):
        plate = (item.get("plateNumber") or "").strip()
        if not plate:
            continue
        days = item.get("taxExpiryDays")
        db.add(
            Vehicle(
                plate_number=plate,
                vehicle_type=item.get("vehicleType") or "Unknown",
                color=item.get("color") or "Unknown",
                owner_name=item.get("ownerName") or "Unknown",
                tax_status=item.get("taxStatus") or TAX_INACTIVE,
                tax_expiry_date=now + timedelta(days=days) if days is not None else None,
                is_active=True,
            )
        )
        count += 1
    db.commit()
    logging.getLogger("seed").info("Seeded demo vehicles count=%s path=%s", count, seed_path)
    return count
