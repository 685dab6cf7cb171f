# stockroom/utils/api_client.py
import logging
from typing import Any, Optional

import httpx

from stockroom.errors import BusinessRuleError, NetworkError, NotFoundError
from stockroom.schemas.common import normalize_page

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if value:
                return value if isinstance(value, str) else str(value)
    return f"HTTP {response.status_code}: {response.reason_phrase}"


class ApiClient:
    """
    Thin async wrapper around the remote REST API.

    Every call either returns the ``data`` part of the response envelope or
    raises one of the package errors. Cancellation and timeouts stay with
    httpx.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url + "/", headers=headers, timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = path.lstrip("/")
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"{method} {path} transport error: {e}")
            raise NetworkError(f"Network error: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f"{method} {path} failed with {response.status_code}: {message}")
            if response.status_code == 404:
                raise NotFoundError(message)
            if response.status_code >= 500:
                raise NetworkError(message, status_code=response.status_code)
            raise BusinessRuleError(message)
        return response

    @staticmethod
    def _body(response: httpx.Response) -> Any:
        # Delete endpoints may answer 204 or 200 with no body
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from {response.request.url}", status_code=response.status_code) from e

    async def request(self, method: str, path: str, *, params: Optional[dict] = None, json: Any = None) -> Any:
        """Send a single-record or mutation request and unwrap its envelope."""
        response = await self._send(method, path, params=params, json=json)
        body = self._body(response)
        if isinstance(body, dict) and "success" in body:
            if body.get("success") is False:
                message = body.get("message") or body.get("error") or f"{method} {path} was rejected"
                logger.warning(f"{method} {path} rejected: {message}")
                raise BusinessRuleError(message)
            return body.get("data")
        return body

    async def get_page(self, path: str, *, params: Optional[dict] = None, page: int = 1, limit: int = 10) -> tuple:
        """Fetch a list endpoint and normalize it into ``(rows, Pagination)``."""
        query = dict(params or {})
        query.setdefault("page", page)
        query.setdefault("limit", limit)
        response = await self._send("GET", path, params=query)
        body = self._body(response)
        if isinstance(body, dict) and body.get("success") is False:
            raise BusinessRuleError(body.get("message") or f"GET {path} was rejected")
        rows, pagination = normalize_page(body, page=page, limit=limit)
        return rows, pagination

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)
