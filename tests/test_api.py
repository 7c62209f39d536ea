import uuid

from fastapi.testclient import TestClient
from sqlalchemy import func

from dishub_monitor.core.db import SessionLocal
from dishub_monitor.core.security import hash_password
from dishub_monitor.main import create_app
from dishub_monitor.models.activity_log import ActivityLog
from dishub_monitor.models.role import Role
from dishub_monitor.models.user import User
from dishub_monitor.services.auth_seed import OPERATOR_ROLE, SUPER_ADMIN_ROLE, VIEWER_ROLE


PASSWORD = "secret123"


def _client() -> TestClient:
    app = create_app()
    return TestClient(app)


def _create_user(role_name: str) -> str:
    username = f"user_{uuid.uuid4().hex[:8]}"
    with SessionLocal() as db:
        role = db.query(Role).filter(func.lower(Role.name) == role_name.lower()).one()
        db.add(
            User(
                username=username,
                email=f"{username}@dishub.go.id",
                name=username,
                password_hash=hash_password(PASSWORD),
                role_id=role.id,
                is_active=True,
            )
        )
        db.commit()
    return username


def _login(client: TestClient, role_name: str) -> dict:
    username = _create_user(role_name)
    resp = client.post("/api/auth/login", json={"username": username, "password": PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


def test_missing_or_invalid_token_is_rejected():
    with _client() as client:
        resp = client.get("/api/vehicles")
        assert resp.status_code == 401
        resp = client.get("/api/vehicles", headers={"Authorization": "Bearer invalid-token"})
        assert resp.status_code == 401


def test_viewer_cannot_write_and_operator_can():
    plate = f"BK {uuid.uuid4().hex[:4].upper()} API"
    body = {
        "plateNumber": plate,
        "vehicleType": "Mobil",
        "color": "Hitam",
        "ownerName": "Budi Santoso",
        "taxStatus": "Aktif",
    }
    with _client() as client:
        viewer = _login(client, VIEWER_ROLE)
        assert client.post("/api/vehicles", json=body, headers=viewer).status_code == 403

        operator = _login(client, OPERATOR_ROLE)
        created = client.post("/api/vehicles", json=body, headers=operator)
        assert created.status_code == 201
        assert created.json()["plateNumber"] == plate

        duplicate = client.post("/api/vehicles", json=body, headers=operator)
        assert duplicate.status_code == 409

        found = client.get(f"/api/vehicles/plate/{plate}", headers=viewer)
        assert found.status_code == 200
        assert found.json()["id"] == created.json()["id"]

        assert client.delete(f"/api/vehicles/{created.json()['id']}", headers=operator).status_code == 403


def test_login_failure_is_logged():
    with _client() as client:
        username = _create_user(VIEWER_ROLE)
        resp = client.post("/api/auth/login", json={"username": username, "password": "wrong-password"})
        assert resp.status_code == 401

    with SessionLocal() as db:
        failures = (
            db.query(ActivityLog)
            .filter(ActivityLog.action == "Login", ActivityLog.status == "failed")
            .filter(ActivityLog.details.contains(username))
            .count()
        )
    assert failures == 1


def test_register_assigns_viewer_role_and_profile_works():
    username = f"reg_{uuid.uuid4().hex[:8]}"
    with _client() as client:
        resp = client.post(
            "/api/auth/register",
            json={"username": username, "email": f"{username}@dishub.go.id", "name": "Petugas", "password": PASSWORD},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["user"]["role"]["name"] == VIEWER_ROLE
        headers = {"Authorization": f"Bearer {data['token']}"}

        profile = client.get("/api/auth/profile", headers=headers)
        assert profile.status_code == 200
        assert profile.json()["username"] == username

        updated = client.put("/api/auth/profile", json={"name": "Petugas Baru"}, headers=headers)
        assert updated.json()["name"] == "Petugas Baru"

        bad = client.put(
            "/api/auth/profile",
            json={"currentPassword": "nope", "newPassword": "another123"},
            headers=headers,
        )
        assert bad.status_code == 400


def test_register_ignores_requested_role():
    username = f"reg_{uuid.uuid4().hex[:8]}"
    with SessionLocal() as db:
        admin_role_id = db.query(Role.id).filter(Role.name == SUPER_ADMIN_ROLE).scalar()

    with _client() as client:
        resp = client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": f"{username}@dishub.go.id",
                "name": "Petugas",
                "password": PASSWORD,
                "roleId": admin_role_id,
            },
        )
        assert resp.status_code == 201
        assert resp.json()["user"]["role"]["name"] == VIEWER_ROLE
        headers = {"Authorization": f"Bearer {resp.json()['token']}"}
        assert client.delete("/api/vehicles/does-not-exist", headers=headers).status_code == 403


def test_report_validation_and_scan_flow():
    plate = f"BK {uuid.uuid4().hex[:4].upper()} SCN"
    with _client() as client:
        admin = _login(client, SUPER_ADMIN_ROLE)

        resp = client.post(
            "/api/reports/generate",
            json={
                "title": "Bad range",
                "startDate": "2026-03-12",
                "endDate": "2026-03-01",
                "taxStatus": "all",
                "format": "excel",
            },
            headers=admin,
        )
        assert resp.status_code == 400

        scan = client.post(
            "/api/scans",
            json={"plateNumber": plate, "vehicleType": "Motor", "color": "Merah", "location": "Medan"},
            headers={**admin, "User-Agent": "plate-reader/1.0"},
        )
        assert scan.status_code == 201
        assert scan.json()["vehicle"]["taxStatus"] == "Mati"
        assert scan.json()["userAgent"] == "plate-reader/1.0"

        listing = client.get("/api/scans", params={"search": plate, "limit": 5}, headers=admin)
        assert listing.status_code == 200
        assert listing.json()["pagination"]["limit"] == 5
        assert [s["plateNumber"] for s in listing.json()["data"]] == [plate]

        assert client.get("/api/scans?page=0", headers=admin).status_code == 422
        assert client.get("/api/statistics/dashboard", headers=admin).status_code == 200
        assert client.get("/api/statistics/activity-heatmap", headers=admin).status_code == 200


def test_activity_export_returns_csv():
    with _client() as client:
        admin = _login(client, SUPER_ADMIN_ROLE)
        resp = client.post("/api/activity/export", json={"status": "success"}, headers=admin)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.text.splitlines()[0].startswith("Timestamp,User,Username,Role,Action,Status,IP Address,User Agent")

        viewer = _login(client, VIEWER_ROLE)
        assert client.post("/api/activity/export", json={}, headers=viewer).status_code == 403
