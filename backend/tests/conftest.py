import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from memory_store import (  # noqa: E402
	FakePool,
	MemoryBoostRepository,
	MemoryFeedRepository,
	MemoryGraphRepository,
	MemoryNotificationRepository,
	Store,
)
from socialcore.api import feed as feed_api  # noqa: E402
from socialcore.api import social as social_api  # noqa: E402
from socialcore.domain.common import db  # noqa: E402
from socialcore.domain.feed.boosts import BoostService  # noqa: E402
from socialcore.domain.feed.service import FeedComposer  # noqa: E402
from socialcore.domain.notifications import service as notification_service  # noqa: E402
from socialcore.domain.notifications.service import NotificationDispatcher  # noqa: E402
from socialcore.domain.social.service import GraphService  # noqa: E402
from socialcore.infra import postgres  # noqa: E402
from socialcore.main import app  # noqa: E402
from socialcore.settings import settings  # noqa: E402


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from socialcore.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via the X-User-Id header, which is only accepted in
	dev mode. Background scheduling stays off so app startup is inert.
	"""
	original_env = settings.environment
	original_scheduler = settings.boost_scheduler_enabled
	settings.environment = "dev"
	settings.boost_scheduler_enabled = False
	try:
		yield
	finally:
		settings.environment = original_env
		settings.boost_scheduler_enabled = original_scheduler


@pytest.fixture
def store(monkeypatch):
	memory = Store()
	pool = FakePool(memory)

	async def _get_pool():
		return pool

	monkeypatch.setattr(db, "get_pool", _get_pool)
	return memory


@pytest.fixture
def notification_repo():
	return MemoryNotificationRepository()


@pytest.fixture
def dispatcher(store, notification_repo, monkeypatch):
	instance = NotificationDispatcher(repository=notification_repo)
	monkeypatch.setattr(notification_service, "_dispatcher", instance)
	return instance


@pytest.fixture
def graph_repo():
	return MemoryGraphRepository()


@pytest.fixture
def graph_service(store, graph_repo, dispatcher):
	return GraphService(repository=graph_repo, dispatcher=dispatcher)


@pytest.fixture
def boost_repo():
	return MemoryBoostRepository()


@pytest.fixture
def feed_composer(store, boost_repo):
	return FeedComposer(repository=MemoryFeedRepository(), boost_repository=boost_repo)


@pytest.fixture
def boost_service(store, boost_repo):
	return BoostService(repository=boost_repo)


@pytest_asyncio.fixture
async def api_client(graph_service, feed_composer, boost_service, dispatcher):
	app.dependency_overrides[social_api.get_graph_service] = lambda: graph_service
	app.dependency_overrides[feed_api.get_feed_composer] = lambda: feed_composer
	app.dependency_overrides[feed_api.get_boost_service] = lambda: boost_service
	app.dependency_overrides[notification_service.get_dispatcher] = lambda: dispatcher
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.dependency_overrides.clear()
