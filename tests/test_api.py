import asyncio

import httpx
import pytest
import pytest_asyncio

from smartroommate.main import create_app
from smartroommate.services.routers import AuthAPI
from smartroommate.services.security import ResetTokenStore

from .conftest import FailingNotifier, FakeRedis, RecordingNotifier, SlowNotifier


@pytest_asyncio.fixture
async def app(config):
    app = await create_app(config)
    yield app
    await app.state.dishka_container.close()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def register(client, name, email, password="password123"):
    response = await client.post("/auth/register", json={
        "name": name,
        "email": email,
        "password": password,
        "birthdate": "2000-01-01",
        "terms_accepted": True,
    })
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def user_id(client, headers):
    response = await client.get("/users/me", headers=headers)
    return response.json()["id"]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestAuth:
    @pytest.mark.asyncio
    async def test_register_and_login(self, client):
        await register(client, "Ana", "Ana@Example.com")

        response = await client.post("/auth/login", json={"email": "ana@example.com", "password": "password123"})
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

        response = await client.post("/auth/login", json={"email": "ana@example.com", "password": "wrong-one"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid credentials"}

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client):
        await register(client, "Ana", "ana@example.com")
        response = await client.post("/auth/register", json={
            "name": "Other",
            "email": "ANA@example.com",
            "password": "password123",
            "birthdate": "1999-05-05",
            "terms_accepted": True,
        })
        assert response.status_code == 400
        assert response.json() == {"detail": "Email already used"}

    @pytest.mark.asyncio
    async def test_terms_must_be_accepted(self, client):
        response = await client.post("/auth/register", json={
            "name": "Ana",
            "email": "ana@example.com",
            "password": "password123",
            "birthdate": "2000-01-01",
        })
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        assert (await client.get("/users/me")).status_code == 401
        response = await client.get("/users/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid token"}

    @pytest.mark.asyncio
    async def test_password_reset(self, app, client):
        auth_api = await app.state.dishka_container.get(AuthAPI)
        notifier = RecordingNotifier()
        auth_api.reset_tokens = ResetTokenStore(FakeRedis())
        auth_api.notifier = notifier
        await register(client, "Ana", "ana@example.com")

        response = await client.post("/auth/forgot-password", json={"email": "nobody@example.com"})
        assert response.status_code == 200
        assert notifier.sent == []

        response = await client.post("/auth/forgot-password", json={"email": "ana@example.com"})
        assert response.status_code == 200
        [mail] = notifier.sent
        token = mail["text"].rsplit("/", 1)[-1]

        response = await client.post("/auth/reset-password", json={"token": token, "password": "new-password"})
        assert response.status_code == 200

        response = await client.post("/auth/reset-password", json={"token": token, "password": "again-password"})
        assert response.status_code == 400

        response = await client.post("/auth/login", json={"email": "ana@example.com", "password": "new-password"})
        assert response.status_code == 200


    @pytest.mark.asyncio
    async def test_forgot_password_answer_hides_mail_failures(self, app, client):
        auth_api = await app.state.dishka_container.get(AuthAPI)
        auth_api.reset_tokens = ResetTokenStore(FakeRedis())
        auth_api.notifier = FailingNotifier()
        await register(client, "Ana", "ana@example.com")

        unknown = await client.post("/auth/forgot-password", json={"email": "nobody@example.com"})
        known = await client.post("/auth/forgot-password", json={"email": "ana@example.com"})

        assert unknown.status_code == known.status_code == 200
        assert unknown.json() == known.json()

    @pytest.mark.asyncio
    async def test_slow_reset_mail_is_cut_off(self, app, client):
        auth_api = await app.state.dishka_container.get(AuthAPI)
        auth_api.reset_tokens = ResetTokenStore(FakeRedis())
        auth_api.notifier = SlowNotifier()
        auth_api.notify_timeout = 0.1
        await register(client, "Ana", "ana@example.com")

        response = await asyncio.wait_for(
            client.post("/auth/forgot-password", json={"email": "ana@example.com"}),
            timeout=3
        )
        assert response.status_code == 200


class TestProfileAndRoommates:
    @pytest.mark.asyncio
    async def test_browse_after_completing_profile(self, client):
        ana = await register(client, "Ana", "ana@example.com")
        ben = await register(client, "Ben", "ben@example.com")

        response = await client.get("/users/roommates", headers=ana)
        assert response.status_code == 403

        profile = {
            "gender": "female",
            "location": "Lisbon",
            "bio": "Calm and tidy",
            "profile_image_url": "http://img/a.png",
            "habits": "cooking, reading, yoga",
            "tidiness": 4,
            "social_energy": 3,
            "noise_tolerance": 2,
        }
        for headers in (ana, ben):
            response = await client.put("/users/me", json=profile, headers=headers)
            assert response.status_code == 200
            assert response.json()["profile_complete"] is True

        response = await client.get("/users/roommates", headers=ana)
        assert response.status_code == 200
        [match] = response.json()
        assert match["name"] == "Ben"
        assert match["compatibility"] == 100


class TestProperties:
    @pytest.mark.asyncio
    async def test_crud_and_ownership(self, client):
        host = await register(client, "Host", "host@example.com")
        guest = await register(client, "Guest", "guest@example.com")

        response = await client.post("/properties", json={"title": "Room", "location": "Lisbon"}, headers=host)
        assert response.status_code == 400

        response = await client.post("/properties", json={
            "title": "Room near the river",
            "location": "Lisbon",
            "price": "550",
            "rooms": "2",
            "latitude": 38.72,
            "longitude": -9.14,
        }, headers=host)
        assert response.status_code == 201
        listing = response.json()
        assert listing["owner_name"] == "Host"

        response = await client.get("/properties", params={"min_price": 600})
        assert response.json() == []
        response = await client.get("/properties", params={"cities": ["lisbon"], "rooms_min": 2})
        assert [item["id"] for item in response.json()] == [listing["id"]]

        response = await client.get("/properties/mine", headers=host)
        assert [item["id"] for item in response.json()] == [listing["id"]]

        update = {"title": "Taken over", "location": "Porto", "price": 1}
        response = await client.put(f"/properties/{listing['id']}", json=update, headers=guest)
        assert response.status_code == 403
        response = await client.delete(f"/properties/{listing['id']}", headers=guest)
        assert response.status_code == 403

        response = await client.delete(f"/properties/{listing['id']}", headers=host)
        assert response.status_code == 200
        response = await client.get(f"/properties/{listing['id']}")
        assert response.status_code == 404


class TestConversations:
    @pytest.mark.asyncio
    async def test_direct_conversation_flow(self, client):
        ana = await register(client, "Ana", "ana@example.com")
        ben = await register(client, "Ben", "ben@example.com")
        ben_id = await user_id(client, ben)

        response = await client.post(
            "/conversations", json={"recipient_id": ben_id, "initial_message": "Is the room free?"}, headers=ana
        )
        assert response.status_code == 201
        conversation_id = response.json()["id"]

        response = await client.post("/conversations", json={"recipient_id": ben_id}, headers=ana)
        assert response.status_code == 200
        assert response.json() == {"id": conversation_id, "created": False}

        response = await client.get("/conversations/unread-count", headers=ben)
        assert response.json() == {"count": 1}

        response = await client.get("/conversations", headers=ben)
        [summary] = response.json()
        assert summary["last_message"] == "Is the room free?"
        assert summary["members"][0]["name"] == "Ana"

        response = await client.get(f"/conversations/{conversation_id}/messages", headers=ben)
        assert [m["body"] for m in response.json()] == ["Is the room free?"]

        response = await client.get("/conversations/unread-count", headers=ben)
        assert response.json() == {"count": 0}

        response = await client.post(f"/conversations/{conversation_id}/messages", json={"body": "Yes"}, headers=ben)
        assert response.status_code == 201

        response = await client.post(f"/conversations/{conversation_id}/messages", json={"body": "  "}, headers=ben)
        assert response.status_code == 400
        assert response.json() == {"detail": "Message body is required."}

    @pytest.mark.asyncio
    async def test_errors(self, client):
        ana = await register(client, "Ana", "ana@example.com")
        ben = await register(client, "Ben", "ben@example.com")
        eve = await register(client, "Eve", "eve@example.com")
        ana_id = await user_id(client, ana)
        ben_id = await user_id(client, ben)

        response = await client.post("/conversations", json={"recipient_id": ana_id}, headers=ana)
        assert response.status_code == 400
        assert response.json() == {"detail": "You cannot message yourself."}

        response = await client.post("/conversations", json={"recipient_id": "abc"}, headers=ana)
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid recipient."}

        response = await client.post("/conversations", json={"member_ids": ["abc"]}, headers=ana)
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid recipient."}

        response = await client.post("/conversations", json={"member_ids": []}, headers=ana)
        assert response.status_code == 400
        assert response.json() == {"detail": "Select at least one other person."}

        response = await client.post("/conversations", json={"member_ids": [ben_id], "name": "Flat"}, headers=ana)
        assert response.status_code == 201
        conversation_id = response.json()["id"]

        response = await client.get(f"/conversations/{conversation_id}/messages", headers=eve)
        assert response.status_code == 403
        response = await client.put(f"/conversations/{conversation_id}", json={"name": "Eve's"}, headers=eve)
        assert response.status_code == 403

        response = await client.put(f"/conversations/{conversation_id}", json={"name": "Flat 2"}, headers=ben)
        assert response.status_code == 200


class TestUploads:
    @pytest.mark.asyncio
    async def test_images_are_stored_and_served(self, client):
        headers = await register(client, "Ana", "ana@example.com")

        response = await client.post(
            "/uploads",
            files=[("images", ("room.png", b"\x89PNG fake image bytes", "image/png"))],
            headers=headers
        )
        assert response.status_code == 201
        [url] = response.json()["urls"]
        assert url.startswith("http://testserver/uploads/")
        assert url.endswith(".png")

        response = await client.get(url.replace("http://testserver", ""))
        assert response.status_code == 200
        assert response.content == b"\x89PNG fake image bytes"

    @pytest.mark.asyncio
    async def test_only_images(self, client):
        headers = await register(client, "Ana", "ana@example.com")
        response = await client.post(
            "/uploads",
            files=[("images", ("notes.txt", b"hello", "text/plain"))],
            headers=headers
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Only image files are allowed."}
