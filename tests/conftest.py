# tests/conftest.py
import httpx
import pytest

from stockroom.config import Settings
from stockroom.main import create_backoffice
from stockroom.utils.api_client import ApiClient
from tests.fake_backend import FakeBackend

BASE_URL = "http://testserver/api"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def settings():
    return Settings(API_URL=BASE_URL, API_TOKEN="test-token", PAGE_SIZE=10)


@pytest.fixture
async def api(backend, anyio_backend):
    client = ApiClient(BASE_URL, token="test-token", transport=httpx.ASGITransport(app=backend.app))
    yield client
    await client.aclose()


@pytest.fixture
async def office(backend, settings, anyio_backend):
    async with create_backoffice(settings, transport=httpx.ASGITransport(app=backend.app), actor="tester") as office:
        yield office
