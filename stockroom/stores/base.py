# stockroom/stores/base.py
"""
Generic paginated resource store.

A store holds one page of a remote collection plus the active filters,
pagination counters, selection and a detail record. Mutations keep that
slice coherent without a full refetch where the outcome is known:

    create  -> prepend on page 1, refetch the current page otherwise
    update  -> replace in place (same index, same page)
    remove  -> drop locally, recount, step back a page and refetch when the
               current page became empty
    filters -> always restart at page 1 and refetch

Concurrency: calls are cooperative coroutines and a store instance has a
single status/error pair. Every state-writing operation takes a ticket; a
fetch response whose ticket is older than the last applied one is dropped,
so a slow fetch can no longer overwrite the result of a faster remove that
was issued after it. Only the most recently issued operation moves
``status``; errors of superseded operations are still recorded.
"""
import enum
import logging
from typing import Any, Generic, List, Optional, Protocol, Type, TypeVar

from stockroom.errors import NotFoundError, StockroomError, ValidationError, FieldError, coerce
from stockroom.schemas.common import Page, QueryFilters, total_pages_for

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")


class StoreStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


# What a store needs from the transport side; the CrudService classes satisfy it
class ResourceGateway(Protocol[T]):
    async def list(self, filters: Optional[QueryFilters] = None, page: int = 1, limit: int = 10) -> Page: ...

    async def get(self, record_id) -> T: ...

    async def create(self, payload) -> T: ...

    async def update(self, record_id, patch) -> T: ...

    async def delete(self, record_id) -> None: ...


class ResourceStore(Generic[T, K]):
    filters_schema: Type[QueryFilters] = QueryFilters
    name = "resource"

    def __init__(self, gateway: ResourceGateway, *, items_per_page: int = 10, filters: Any = None):
        self.gateway = gateway
        self._default_limit = items_per_page
        self._seq = 0
        self._applied = 0
        self._generation = 0
        self._reset_state()
        if filters is not None:
            self.filters = coerce(self.filters_schema, filters)

    def _reset_state(self) -> None:
        self.items: List[T] = []
        self.page = 1
        self.total_pages = 0
        self.total_items = 0
        self.items_per_page = self._default_limit
        self.filters = self.filters_schema()
        self.status = StoreStatus.IDLE
        self.operation: Optional[str] = None
        self.error: Optional[StockroomError] = None
        self.selected_ids: List[K] = []
        self.current: Optional[T] = None

    @staticmethod
    def key(record) -> K:
        return record.id

    @property
    def is_loading(self) -> bool:
        return self.status == StoreStatus.LOADING

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None

    # ---- operation state machine ----

    def _begin(self, operation: str) -> tuple:
        self._seq += 1
        self.status = StoreStatus.LOADING
        self.operation = operation
        self.error = None
        return self._seq, self._generation

    def _succeed(self, ticket: int) -> None:
        if ticket == self._seq:
            self.status = StoreStatus.SUCCESS
            self.operation = None

    def _fail(self, ticket: int, exc: StockroomError) -> None:
        if isinstance(exc, ValidationError):
            # Field errors belong to the caller's form, not to the store
            if ticket == self._seq:
                self.status = StoreStatus.SUCCESS if self._applied else StoreStatus.IDLE
                self.operation = None
            return
        logger.warning(f"{self.name} store: {self.operation or 'operation'} failed: {exc.message}")
        self.error = exc
        if ticket == self._seq:
            self.status = StoreStatus.ERROR
            self.operation = None

    def _stale(self, generation: int) -> bool:
        return generation != self._generation

    def _apply_page(self, ticket: int, result: Page) -> None:
        pagination = result.pagination
        self.items = list(result.items)
        self.page = pagination.page
        self.total_pages = pagination.total_pages
        self.total_items = pagination.total
        self.items_per_page = pagination.limit
        loaded = {self.key(item) for item in self.items}
        self.selected_ids = [k for k in self.selected_ids if k in loaded]
        self._applied = ticket

    def _replace(self, record: T) -> None:
        key = self.key(record)
        self.items = [record if self.key(item) == key else item for item in self.items]
        if self.current is not None and self.key(self.current) == key:
            self.current = record

    # ---- reads ----

    async def fetch(self, filters: Any = None, page: Optional[int] = None, limit: Optional[int] = None) -> Optional[Page]:
        """Load one page, replacing the slice. On failure the previous items stay."""
        if filters is not None:
            self.filters = coerce(self.filters_schema, filters)
        page = page if page is not None else self.page
        limit = limit if limit is not None else self.items_per_page
        if page < 1 or limit < 1:
            raise ValidationError([FieldError("page" if page < 1 else "limit", "must be at least 1")])

        ticket, generation = self._begin("fetch")
        try:
            result = await self.gateway.list(self.filters, page=page, limit=limit)
        except StockroomError as exc:
            if not self._stale(generation):
                self._fail(ticket, exc)
            return None

        if self._stale(generation):
            return None
        if ticket < self._applied:
            logger.debug(f"{self.name} store: dropping stale page {page} response (ticket {ticket} < {self._applied})")
            self._succeed(ticket)
            return None
        self._apply_page(ticket, result)
        self._succeed(ticket)
        return result

    async def refresh(self) -> Optional[Page]:
        return await self.fetch()

    async def get(self, record_id: K) -> Optional[T]:
        """Load one record into ``current`` (detail view)."""
        ticket, generation = self._begin("get")
        try:
            record = await self.gateway.get(record_id)
        except StockroomError as exc:
            if not self._stale(generation):
                self._fail(ticket, exc)
            return None
        if not self._stale(generation):
            self.current = record
            self._replace(record)
            self._succeed(ticket)
        return record

    # ---- mutations ----

    async def create(self, payload: Any) -> T:
        ticket, generation = self._begin("create")
        try:
            record = await self.gateway.create(payload)
        except StockroomError as exc:
            self._fail(ticket, exc)
            raise
        if self._stale(generation):
            return record

        if self.page == 1:
            self.items = [record] + self.items
            if len(self.items) > self.items_per_page:
                self.items = self.items[: self.items_per_page]
            self.total_items += 1
            self.total_pages = total_pages_for(self.total_items, self.items_per_page)
            self._applied = ticket
            self._succeed(ticket)
        else:
            # Position of the new record on this page depends on server-side sorting
            self._succeed(ticket)
            await self.fetch()
        return record

    async def update(self, record_id: K, patch: Any) -> T:
        ticket, generation = self._begin("update")
        try:
            record = await self.gateway.update(record_id, patch)
        except StockroomError as exc:
            self._fail(ticket, exc)
            raise
        if not self._stale(generation):
            self._replace(record)
            self._succeed(ticket)
        return record

    async def remove(self, record_id: K) -> None:
        ticket, generation = self._begin("remove")
        try:
            await self.gateway.delete(record_id)
        except StockroomError as exc:
            self._fail(ticket, exc)
            raise
        if self._stale(generation):
            return

        remaining = [item for item in self.items if self.key(item) != record_id]
        if len(remaining) != len(self.items):
            self.total_items = max(self.total_items - 1, 0)
            self.total_pages = total_pages_for(self.total_items, self.items_per_page)
        self.items = remaining
        self.selected_ids = [k for k in self.selected_ids if k != record_id]
        if self.current is not None and self.key(self.current) == record_id:
            self.current = None
        self._applied = ticket
        self._succeed(ticket)

        # Never leave the view pointed at a page that no longer exists
        if not self.items and self.page > 1:
            self.page -= 1
            await self.fetch()
        elif not self.items and self.total_items > 0:
            await self.fetch()

    def apply(self, record: T) -> None:
        """Refresh a record already known to the store without a network call."""
        self._replace(record)

    # ---- filters & pagination ----

    async def set_filters(self, patch: Any = None, **changes) -> Optional[Page]:
        if isinstance(patch, QueryFilters):
            patch = patch.model_dump(exclude_unset=True)
        merged = {**self.filters.model_dump(exclude_none=True), **dict(patch or {}), **changes}
        self.filters = coerce(self.filters_schema, merged)
        self.page = 1
        return await self.fetch()

    async def clear_filters(self) -> Optional[Page]:
        self.filters = self.filters_schema()
        self.page = 1
        return await self.fetch()

    async def search(self, term: str) -> Optional[Page]:
        return await self.set_filters(search=term)

    async def set_page(self, page: int) -> Optional[Page]:
        return await self.fetch(page=page)

    async def set_limit(self, limit: int) -> Optional[Page]:
        return await self.fetch(page=1, limit=limit)

    # ---- selection (local only) ----

    def select(self, record_id: K) -> None:
        if record_id in self.selected_ids:
            return
        if record_id not in {self.key(item) for item in self.items}:
            raise NotFoundError(f"{self.name} {record_id} is not on the current page")
        self.selected_ids.append(record_id)

    def unselect(self, record_id: K) -> None:
        self.selected_ids = [k for k in self.selected_ids if k != record_id]

    def select_all(self) -> None:
        self.selected_ids = [self.key(item) for item in self.items]

    def clear_selection(self) -> None:
        self.selected_ids = []

    @property
    def selected(self) -> List[T]:
        chosen = set(self.selected_ids)
        return [item for item in self.items if self.key(item) in chosen]

    # ---- housekeeping ----

    def report_error(self, exc: StockroomError) -> None:
        """Surface an error raised outside the store's own operations (ledger, intake)."""
        if not isinstance(exc, ValidationError):
            self.error = exc

    def clear_error(self) -> None:
        self.error = None
        if self.status == StoreStatus.ERROR:
            self.status = StoreStatus.SUCCESS if self._applied else StoreStatus.IDLE

    def clear_current(self) -> None:
        self.current = None

    def reset(self) -> None:
        """Tear the slice down (owning view unmounted); in-flight responses are ignored."""
        self._generation += 1
        self._applied = 0
        self._reset_state()
