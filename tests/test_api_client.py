# tests/test_api_client.py
import httpx
import pytest

from stockroom.errors import BusinessRuleError, NetworkError, NotFoundError
from stockroom.utils.api_client import ApiClient

pytestmark = pytest.mark.anyio


def _client(handler) -> ApiClient:
    return ApiClient("http://remote/api", token="abc", transport=httpx.MockTransport(handler))


async def test_single_record_envelope_is_unwrapped(api, backend):
    backend.add_category(id=4, code="MON", name="Monitor")
    data = await api.get("/categories/4")
    assert data["code"] == "MON"


async def test_success_false_on_2xx_is_a_business_error():
    def handler(request):
        return httpx.Response(200, json={"success": False, "message": "Duplicate category code"})

    async with _client(handler) as client:
        with pytest.raises(BusinessRuleError) as exc:
            await client.post("/categories", json={"code": "LAP"})
    assert exc.value.message == "Duplicate category code"


async def test_status_codes_map_to_error_kinds(api, backend):
    with pytest.raises(NotFoundError):
        await api.get("/categories/999")

    backend.fail("GET", "/categories/low-stock", status=500, message="database is down")
    with pytest.raises(NetworkError) as exc:
        await api.get("/categories/low-stock")
    assert exc.value.status_code == 500
    assert exc.value.message == "database is down"

    backend.fail("GET", "/categories/low-stock", status=409, message="conflict")
    with pytest.raises(BusinessRuleError):
        await api.get("/categories/low-stock")


async def test_transport_failure_is_a_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(NetworkError) as exc:
            await client.get("/categories")
    assert exc.value.status_code is None


async def test_empty_delete_response_is_success():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["url"] = str(request.url)
        return httpx.Response(204)

    async with _client(handler) as client:
        assert await client.delete("/users/u1") is None
    assert seen["auth"] == "Bearer abc"
    assert seen["url"] == "http://remote/api/users/u1"


async def test_list_endpoint_is_normalized(api, backend):
    for i in range(1, 13):
        backend.add_category(id=i, code=f"C{i:02d}")
    rows, pagination = await api.get_page("/categories", params={"has_stock": True}, page=2, limit=5)
    assert len(rows) == 5
    assert pagination.page == 2
    assert pagination.total == 12
    assert pagination.total_pages == 3
    assert pagination.has_next and pagination.has_prev


async def test_error_detail_from_http_exception(api):
    with pytest.raises(NotFoundError) as exc:
        await api.get("/purchases/42")
    assert exc.value.message == "Purchase receipt not found"
