# stockroom/services/base.py
from typing import Any, Generic, Optional, Type, TypeVar

import pydantic

from stockroom.errors import NetworkError, NotFoundError, coerce
from stockroom.schemas.common import Page, QueryFilters
from stockroom.utils.api_client import ApiClient

T = TypeVar("T", bound=pydantic.BaseModel)


class CrudService(Generic[T]):
    """
    Endpoint adapter for one REST collection.

    Subclasses set ``path``, the record ``model`` and the create/update
    schemas. Instances are the gateways the resource stores talk to.
    """

    path: str = ""
    model: Type[T]
    create_schema: Type[pydantic.BaseModel]
    update_schema: Type[pydantic.BaseModel]

    def __init__(self, api: ApiClient):
        self.api = api

    def _parse(self, data: Any, model: Optional[Type[pydantic.BaseModel]] = None):
        model = model or self.model
        if data is None:
            raise NotFoundError(f"Empty {model.__name__} response from {self.path}")
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as e:
            raise NetworkError(f"Unexpected {model.__name__} payload from {self.path}: {e.error_count()} invalid field(s)") from e

    async def list(self, filters: Optional[QueryFilters] = None, page: int = 1, limit: int = 10) -> Page:
        params = filters.to_params() if filters is not None else {}
        rows, pagination = await self.api.get_page(self.path, params=params, page=page, limit=limit)
        return Page(items=[self._parse(row) for row in rows], pagination=pagination)

    async def get(self, record_id) -> T:
        return self._parse(await self.api.get(f"{self.path}/{record_id}"))

    async def create(self, payload) -> T:
        payload = coerce(self.create_schema, payload)
        data = await self.api.post(self.path, json=payload.model_dump(mode="json", exclude_none=True))
        return self._parse(data)

    async def update(self, record_id, patch) -> T:
        patch = coerce(self.update_schema, patch)
        data = await self.api.put(f"{self.path}/{record_id}", json=patch.model_dump(mode="json", exclude_unset=True))
        return self._parse(data)

    async def delete(self, record_id) -> None:
        await self.api.delete(f"{self.path}/{record_id}")
