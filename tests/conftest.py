from datetime import date
import asyncio

import pytest
import pytest_asyncio

from smartroommate.config import Config, DBConfig, JWTConfig, RedisConfig, StorageConfig
from smartroommate.core.db_manager import SQLiteDatabaseManager
from smartroommate.core.gateways import UserGateway, PropertyGateway, ConversationGateway
from smartroommate.services.conversations import ConversationDirectory
from smartroommate.services.notifier import BaseNotifier


COMPLETE_PROFILE = {
    "gender": "female",
    "location": "Lisbon",
    "bio": "Quiet night owl",
    "profile_image_url": "http://img/1.png",
    "habits": "cooking, reading, yoga",
    "tidiness": 4,
    "social_energy": 3,
    "noise_tolerance": 2,
    "profile_complete": True,
}


class RecordingNotifier(BaseNotifier):
    def __init__(self):
        self.sent = []

    async def notify(self, email, subject, text, html):
        self.sent.append({"email": email, "subject": subject, "text": text, "html": html})


class FailingNotifier(BaseNotifier):
    async def notify(self, email, subject, text, html):
        raise ConnectionError("SMTP server unreachable")


class SlowNotifier(BaseNotifier):
    async def notify(self, email, subject, text, html):
        await asyncio.sleep(5)


class FakeRedis:
    """In-memory stand-in for the few redis.Redis calls the app makes"""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def setex(self, key, ttl, value):
        self.store[key] = value.encode() if isinstance(value, str) else value
        self.ttls[key] = ttl

    def get(self, key):
        return self.store.get(key)

    def delete(self, key):
        self.store.pop(key, None)
        self.ttls.pop(key, None)


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        jwt=JWTConfig(secret_key="test-secret"),
        db=DBConfig(path=str(tmp_path / "test.db")),
        redis=RedisConfig(),
        storage=StorageConfig(upload_dir=str(tmp_path / "uploads"), public_base_url="http://testserver"),
    )


@pytest_asyncio.fixture
async def db_manager(config):
    manager = SQLiteDatabaseManager(config)
    await manager.initialize()
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def user_gateway(db_manager):
    return UserGateway(db_manager)


@pytest.fixture
def property_gateway(db_manager):
    return PropertyGateway(db_manager)


@pytest.fixture
def conversation_gateway(db_manager):
    return ConversationGateway(db_manager)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def directory(conversation_gateway, user_gateway, property_gateway, notifier):
    return ConversationDirectory(conversation_gateway, user_gateway, property_gateway, notifier, notify_timeout=0.5)


@pytest.fixture
def make_user(user_gateway):
    counter = {"n": 0}

    async def _make_user(name=None, email_opt_in=False, **profile):
        counter["n"] += 1
        n = counter["n"]
        user = await user_gateway.create_user(
            name=name or f"User {n}",
            email=f"user{n}@example.com",
            hashed_password="not-a-real-hash",
            birthdate=date(2000, 1, 1),
            age=25,
            email_opt_in=email_opt_in,
            terms_accepted=True
        )
        if profile:
            user = await user_gateway.update_profile(user.id, profile)
        return user

    return _make_user


@pytest.fixture
def make_property(property_gateway):
    async def _make_property(owner_id, **overrides):
        values = {
            "title": "Sunny room",
            "location": "Lisbon",
            "price": 500.0,
            "description": None,
            "rooms": 2,
            "property_type": "apartment",
            "main_image_url": None,
            "gallery_images": [],
            "latitude": None,
            "longitude": None,
        }
        values.update(overrides)
        return await property_gateway.create_property(owner_id, values)

    return _make_property
