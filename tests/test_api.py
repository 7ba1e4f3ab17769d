"""
HTTP surface: authentication, profile, progress and store modes.
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fittrack.core.security import decode_access_token
from fittrack.enums import StoreMode

from conftest import TEST_PASSWORD

REGISTRATION = {
    "username": "jan",
    "email": "Jan@Example.com",
    "password": TEST_PASSWORD,
    "firstName": "Jan",
    "height": 181,
}


async def register_and_authenticate(http: AsyncClient, registration=REGISTRATION):
    await http.post("/api/v1/auth/register", json=registration)
    login = await http.post("/api/v1/auth/login", json={
        "username": registration["username"], "password": registration["password"],
    })
    return {"Authorization": f"Bearer {login.json()['token']}"}


@pytest_asyncio.fixture
async def mode_client(make_stores, analytics):
    """ASGI clients over the app running in a chosen store mode."""
    from fittrack.main import app

    clients = []

    async def factory(mode: StoreMode) -> AsyncClient:
        app.state.stores = make_stores(mode)
        app.state.analytics = analytics
        http = AsyncClient(transport=ASGITransport(app=app, raise_app_exceptions=False), base_url="http://test")
        clients.append(http)
        return http

    yield factory
    for http in clients:
        await http.aclose()


class TestAuth:

    async def test_register_writes_both_stores(self, client):
        response = await client.post("/api/v1/auth/register", json=REGISTRATION)

        assert response.status_code == 201
        body = response.json()
        assert body["stores"] == {"mongo": True, "mysql": True}
        assert body["user"]["email"] == "jan@example.com"
        assert isinstance(body["user"]["mysqlId"], int)
        assert "password" not in body["user"]

    async def test_registration_cannot_choose_role(self, client):
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "role": "admin"})

        assert response.status_code == 201
        assert response.json()["user"]["role"] == "client"
        login = await client.post("/api/v1/auth/login", json={"username": "jan", "password": TEST_PASSWORD})
        assert decode_access_token(login.json()["token"])["role"] == "client"

    async def test_duplicate_registration(self, client):
        await client.post("/api/v1/auth/register", json=REGISTRATION)
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "username": "other"})
        assert response.status_code == 409

    async def test_login_by_email(self, client):
        await client.post("/api/v1/auth/register", json=REGISTRATION)

        response = await client.post("/api/v1/auth/login", json={"email": "JAN@example.com", "password": TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json()["token"]
        assert response.json()["user"]["username"] == "jan"

    async def test_wrong_password(self, client):
        await client.post("/api/v1/auth/register", json=REGISTRATION)
        response = await client.post("/api/v1/auth/login", json={"username": "jan", "password": "nope-nope"})
        assert response.status_code == 401

    async def test_unknown_user(self, client):
        response = await client.post("/api/v1/auth/login", json={"username": "ghost", "password": TEST_PASSWORD})
        assert response.status_code == 401

    async def test_invalid_registration(self, client):
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "password": "123"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request data"

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer not-a-token"}, {"Authorization": "Token abc"}])
    async def test_protected_routes_need_a_valid_token(self, client, headers):
        response = await client.get("/api/v1/profile", headers=headers)
        assert response.status_code == 401
        assert "error" in response.json()

    async def test_health_is_public(self, client):
        response = await client.get("/health")
        assert response.json() == {"status": "healthy", "databaseMode": "dual", "version": "1.0.0"}


class TestProfile:

    async def test_get_profile(self, client, auth_headers):
        response = await client.get("/api/v1/profile", headers=auth_headers)

        user = response.json()["user"]
        assert user["username"] == "anna"
        assert user["profile"]["weight"] == 62.5
        assert "mysqlId" in user

    async def test_update_profile(self, client, auth_headers):
        response = await client.put("/api/v1/profile", json={"lastName": "Nowak", "height": 168}, headers=auth_headers)

        body = response.json()
        assert body["updated"] == {"mongo": True, "mysql": True}
        assert body["user"]["profile"]["lastName"] == "Nowak"
        assert body["user"]["profile"]["firstName"] == "Anna"

    async def test_empty_profile_update(self, client, auth_headers):
        response = await client.put("/api/v1/profile", json={}, headers=auth_headers)
        assert response.status_code == 400

    async def test_future_date_of_birth(self, client, auth_headers):
        response = await client.put("/api/v1/profile", json={"dateOfBirth": "2999-01-01"}, headers=auth_headers)
        assert response.status_code == 400

    async def test_change_password(self, client, auth_headers):
        wrong = await client.put(
            "/api/v1/profile/password",
            json={"currentPassword": "bad-guess", "newPassword": "brand-new-1"},
            headers=auth_headers,
        )
        assert wrong.status_code == 400

        changed = await client.put(
            "/api/v1/profile/password",
            json={"currentPassword": TEST_PASSWORD, "newPassword": "brand-new-1"},
            headers=auth_headers,
        )
        assert changed.json()["updated"] == {"mongo": True, "mysql": True}

        old = await client.post("/api/v1/auth/login", json={"username": "anna", "password": TEST_PASSWORD})
        new = await client.post("/api/v1/auth/login", json={"username": "anna", "password": "brand-new-1"})
        assert old.status_code == 401
        assert new.status_code == 200

    async def test_delete_account_removes_owned_data(self, client, auth_headers):
        await client.post("/api/v1/progress", json={"weight": 62.0, "trainingTime": 45}, headers=auth_headers)
        await client.post("/api/v1/training-plans", json={"name": "Push", "days": []}, headers=auth_headers)

        response = await client.delete("/api/v1/profile", headers=auth_headers)

        assert response.json()["deleted"] == {"mongo": True, "mysql": True}
        login = await client.post("/api/v1/auth/login", json={"username": "anna", "password": TEST_PASSWORD})
        assert login.status_code == 401
        assert (await client.get("/api/v1/profile", headers=auth_headers)).status_code == 404


class TestProgress:

    async def test_create_updates_profile_weight(self, client, auth_headers):
        response = await client.post(
            "/api/v1/progress",
            json={"weight": 61.2, "trainingTime": 50, "date": "2025-03-01T08:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["stores"] == {"mongo": True, "mysql": True}
        profile = (await client.get("/api/v1/profile", headers=auth_headers)).json()["user"]
        assert profile["profile"]["weight"] == 61.2

    async def test_lifecycle_by_either_id(self, client, auth_headers):
        created = (await client.post(
            "/api/v1/progress", json={"weight": 61.2, "trainingTime": 50}, headers=auth_headers
        )).json()["progress"]

        fetched = await client.get(f"/api/v1/progress/{created['mysqlId']}", headers=auth_headers)
        assert fetched.json()["progress"]["id"] == created["id"]

        updated = await client.put(
            f"/api/v1/progress/{created['id']}", json={"weight": 60.8, "trainingTime": 65}, headers=auth_headers
        )
        assert updated.json()["updated"] == {"mongo": True, "mysql": True}
        assert updated.json()["progress"]["trainingTime"] == 65

        deleted = await client.delete(f"/api/v1/progress/{created['mysqlId']}", headers=auth_headers)
        assert deleted.json()["deleted"] == {"mongo": True, "mysql": True}
        assert (await client.get(f"/api/v1/progress/{created['id']}", headers=auth_headers)).status_code == 404

    async def test_list_is_paginated_oldest_first(self, client, auth_headers):
        for day in (3, 1, 2):
            await client.post(
                "/api/v1/progress",
                json={"weight": 60 + day, "trainingTime": 30, "date": f"2025-01-0{day}T00:00:00Z"},
                headers=auth_headers,
            )

        response = await client.get("/api/v1/progress", params={"page": 1, "limit": 2}, headers=auth_headers)

        body = response.json()
        assert [entry["weight"] for entry in body["progress"]] == [61, 62]
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    async def test_invalid_entry(self, client, auth_headers):
        response = await client.post("/api/v1/progress", json={"weight": -1, "trainingTime": 30}, headers=auth_headers)
        assert response.status_code == 400

    async def test_entries_are_private(self, client, auth_headers):
        created = (await client.post(
            "/api/v1/progress", json={"weight": 61.2, "trainingTime": 50}, headers=auth_headers
        )).json()["progress"]
        other = await register_and_authenticate(client)

        response = await client.get(f"/api/v1/progress/{created['id']}", headers=other)

        assert response.status_code == 404


class TestStoreModes:

    async def test_document_only(self, mode_client):
        http = await mode_client(StoreMode.DOCUMENT_ONLY)
        headers = await register_and_authenticate(http)

        created = await http.post("/api/v1/progress", json={"weight": 80, "trainingTime": 20}, headers=headers)

        assert created.json()["stores"] == {"mongo": True, "mysql": False}
        assert "mysqlId" not in created.json()["progress"]
        assert (await http.get("/health")).json()["databaseMode"] == "document-only"

    async def test_relational_only(self, mode_client):
        http = await mode_client(StoreMode.RELATIONAL_ONLY)
        headers = await register_and_authenticate(http)

        created = await http.post("/api/v1/progress", json={"weight": 80, "trainingTime": 20}, headers=headers)
        progress = created.json()["progress"]

        assert created.json()["stores"] == {"mongo": False, "mysql": True}
        assert isinstance(progress["id"], int)
        listing = await http.get("/api/v1/progress", headers=headers)
        assert listing.json()["pagination"]["total"] == 1
