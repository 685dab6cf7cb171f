# tests/test_category_store.py
import pytest

from stockroom.errors import BusinessRuleError, ValidationError

pytestmark = pytest.mark.anyio


@pytest.fixture
def catalog(backend):
    backend.add_category(id=1, code="LAP", name="Laptop", current_stock=20, reorder_point=10)
    backend.add_category(id=2, code="MON", name="Monitor", current_stock=1, reorder_point=3)
    backend.add_category(id=3, code="LIC", name="License", has_stock=False)
    return backend


async def test_create_normalizes_code_and_prepends(office, catalog):
    await office.categories.fetch()
    category = await office.categories.create({"name": "Keyboard", "code": " kbd ", "current_stock": 4, "reorder_point": 5})
    assert category.code == "KBD"
    assert category.is_low_stock is True
    assert office.categories.items[0].id == category.id
    assert office.categories.total_items == 4


async def test_duplicate_code_is_a_store_error(office, catalog):
    await office.categories.fetch()
    with pytest.raises(BusinessRuleError):
        await office.categories.create({"name": "Another laptop", "code": "LAP"})
    assert office.categories.error_message == "Category code already exists"
    assert len(office.categories.items) == 3


async def test_stock_is_not_a_form_field(office, catalog):
    await office.categories.fetch()
    with pytest.raises(ValidationError) as exc:
        await office.categories.update(1, {"name": "Laptop 14in", "current_stock": 500})
    assert "current_stock" in exc.value.fields
    assert office.categories.error is None
    assert catalog.count_calls("PUT", "/categories/1") == 0


async def test_update_thresholds_recomputes_low_stock(office, catalog):
    await office.categories.fetch()
    updated = await office.categories.update(1, {"reorder_point": 25})
    assert updated.is_low_stock is True
    assert next(c for c in office.categories.items if c.id == 1).is_low_stock is True


async def test_low_stock_list_and_filters(office, catalog):
    low = await office.categories.fetch_low_stock()
    assert [c.code for c in low] == ["MON"]
    assert office.categories.low_stock == low

    await office.categories.set_filters(is_low_stock=True)
    assert [c.code for c in office.categories.items] == ["LIC", "MON"]

    await office.categories.set_filters(has_stock=True)
    assert [c.code for c in office.categories.items] == ["MON"]


async def test_detail_view(office, catalog):
    category = await office.categories.get(2)
    assert office.categories.current == category
    office.categories.clear_current()
    assert office.categories.current is None

    assert await office.categories.get(99) is None
    assert office.categories.error is not None
