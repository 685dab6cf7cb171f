# tests/test_ledger.py
import logging

import pytest

from stockroom.errors import BusinessRuleError, InvalidAdjustment, NotFoundError, ValidationError
from stockroom.ledger import LedgerEntry, recompute_low_stock

pytestmark = pytest.mark.anyio


@pytest.fixture
def stocked(backend):
    backend.add_category(id=1, code="LAP", name="Laptop", current_stock=20, min_stock=5, reorder_point=10)
    backend.add_category(id=2, code="MON", name="Monitor", current_stock=10, reorder_point=3)
    backend.add_category(id=3, code="LIC", name="License", has_stock=False)
    return backend


async def test_adjustment_moves_stock_and_records_one_movement(office, stocked):
    await office.categories.fetch()
    movement = await office.ledger.adjust_stock(1, -12, "Broken units written off")

    assert (movement.before_stock, movement.after_stock) == (20, 8)
    assert movement.movement_type == "out"
    assert movement.quantity == 12
    assert movement.reference_type == "adjustment"

    category = office.ledger.snapshot(1)
    assert category.current_stock == 8
    assert category.is_low_stock is True
    assert category.is_low_stock == recompute_low_stock(category)
    assert office.ledger.movements(1) == [movement]

    # The loaded page and the low-stock list follow without a refetch
    listed = next(c for c in office.categories.items if c.id == 1)
    assert listed.current_stock == 8
    assert [c.id for c in office.categories.low_stock] == [1]
    assert stocked.categories[1]["current_stock"] == 8


async def test_adjustment_below_zero_changes_nothing(office, stocked):
    with pytest.raises(InvalidAdjustment) as exc:
        await office.ledger.adjust_stock(2, -11, "Too many")
    assert exc.value.errors[0].field == "quantity"
    assert stocked.movements == []
    assert stocked.count_calls("POST", "/categories/2/stock") == 0
    assert office.ledger.snapshot(2).current_stock == 10
    assert office.ledger.movements(2) == []
    assert office.categories.error is exc.value


async def test_untracked_category_cannot_be_adjusted(office, stocked):
    with pytest.raises(InvalidAdjustment):
        await office.ledger.adjust_stock(3, 1)
    assert stocked.movements == []


async def test_zero_or_fractional_delta_is_a_validation_error(office, stocked):
    with pytest.raises(ValidationError):
        await office.ledger.adjust_stock(1, 0)
    with pytest.raises(ValidationError):
        await office.ledger.adjust_stock(1, 1.5)
    assert office.categories.error is None


async def test_unknown_category(office, stocked):
    with pytest.raises(NotFoundError):
        await office.ledger.adjust_stock(99, 1)


async def test_server_rejection_is_surfaced(office, stocked):
    stocked.fail("POST", "/categories/1/stock", status=400, message="Stock is locked for inventory count")
    with pytest.raises(BusinessRuleError):
        await office.ledger.adjust_stock(1, 5)
    assert office.categories.error_message == "Stock is locked for inventory count"
    assert office.ledger.snapshot(1).current_stock == 20


async def test_legacy_adjustment_response_is_normalized(office, stocked):
    stocked.legacy_stock_response = True
    movement = await office.ledger.adjust_stock(2, 4, "Found in storage")
    assert (movement.before_stock, movement.after_stock) == (10, 14)
    assert movement.signed_quantity == 4
    assert office.ledger.snapshot(2).current_stock == 14


async def test_adjustment_checks_current_server_stock(office, stocked):
    await office.ledger.adjust_stock(1, 5)
    assert office.ledger.snapshot(1).current_stock == 25
    # Restocked by another client
    stocked.categories[1]["current_stock"] = 60

    movement = await office.ledger.adjust_stock(1, -40)
    assert (movement.before_stock, movement.after_stock) == (60, 20)
    assert office.ledger.snapshot(1).current_stock == 20


async def test_adjustment_sees_tracking_switched_on(office, stocked):
    await office.ledger.category(3)
    await office.categories.update(3, {"has_stock": True})

    movement = await office.ledger.adjust_stock(3, 2)
    assert (movement.before_stock, movement.after_stock) == (0, 2)


async def test_drift_is_logged_when_stock_moved_elsewhere(office, stocked, caplog):
    await office.ledger.adjust_stock(1, 5)
    stocked.categories[1]["current_stock"] = 30

    with caplog.at_level(logging.WARNING, logger="stockroom.ledger"):
        movement = await office.ledger.adjust_stock(1, 5)
    assert (movement.before_stock, movement.after_stock) == (30, 35)
    assert "Ledger drift on category 1" in caplog.text
    assert office.ledger.snapshot(1).current_stock == 35


async def test_adjustments_are_audited(office, stocked, caplog):
    with caplog.at_level(logging.INFO, logger="stockroom.audit"):
        await office.ledger.adjust_stock(1, 2)
        with pytest.raises(InvalidAdjustment):
            await office.ledger.adjust_stock(1, -100)
    records = [r for r in caplog.records if r.name == "stockroom.audit"]
    assert [r.status for r in records] == ["SUCCESS", "FAILED"]
    assert all(r.action == "STOCK_ADJUSTMENT" for r in records)
    assert "actor=tester" in records[0].getMessage()


async def test_history_sums_to_stock_change(office, stocked):
    for delta in (5, -3, 7, -2):
        await office.ledger.adjust_stock(1, delta)
    await office.ledger.adjust_stock(2, 1)

    history = await office.ledger.load_history(1)
    assert len(history) == 4
    assert office.ledger.net_change(1) == stocked.categories[1]["current_stock"] - 20
    for previous, current in zip(history, history[1:]):
        assert current.before_stock == previous.after_stock


async def test_bulk_batch_is_rejected_as_a_whole(office, stocked):
    with pytest.raises(InvalidAdjustment) as exc:
        await office.ledger.bulk_adjust([(1, -5, "ok"), (2, -50, "too many"), (3, 1), (99, 1)])
    assert [e.field for e in exc.value.errors] == [
        "entries[2].delta", "entries[3].category_id", "entries[4].category_id",
    ]
    assert stocked.count_calls("POST", "/stocks/bulk-adjustment") == 0
    assert stocked.movements == []
    assert stocked.categories[1]["current_stock"] == 20


async def test_bulk_validation_is_cumulative_per_category(office, stocked):
    with pytest.raises(InvalidAdjustment) as exc:
        await office.ledger.bulk_adjust([LedgerEntry(1, -15), LedgerEntry(1, -10)])
    assert [e.field for e in exc.value.errors] == ["entries[2].delta"]
    assert stocked.movements == []


async def test_bulk_applies_every_entry(office, stocked):
    movements = await office.ledger.bulk_adjust([(1, -15, "audit"), (1, 3, "audit"), (2, 2, "audit")])
    assert [(m.before_stock, m.after_stock) for m in movements] == [(20, 5), (5, 8), (10, 12)]
    assert office.ledger.snapshot(1).current_stock == 8
    assert office.ledger.snapshot(1).is_low_stock is True
    assert office.ledger.snapshot(2).current_stock == 12
    assert stocked.count_calls("POST", "/stocks/bulk-adjustment") == 1


async def test_bulk_validation_reads_current_stock(office, stocked):
    await office.ledger.category(2)
    stocked.categories[2]["current_stock"] = 1
    with pytest.raises(InvalidAdjustment) as exc:
        await office.ledger.bulk_adjust([(2, -5)])
    assert [e.field for e in exc.value.errors] == ["entries[1].delta"]
    assert stocked.count_calls("POST", "/stocks/bulk-adjustment") == 0


async def test_bulk_reports_server_side_failures(office, stocked, monkeypatch):
    original = office.category_service.bulk_adjust

    async def bulk_after_concurrent_issue(payload):
        # Stock consumed by another client between validation and the batch call
        stocked.categories[2]["current_stock"] = 0
        return await original(payload)

    monkeypatch.setattr(office.category_service, "bulk_adjust", bulk_after_concurrent_issue)
    with pytest.raises(BusinessRuleError) as exc:
        await office.ledger.bulk_adjust([(1, 1), (2, -5)])
    assert "category 2" in exc.value.message
    assert office.ledger.snapshot(1).current_stock == 21
    assert office.categories.error is exc.value


async def test_empty_batch_is_invalid(office, stocked):
    with pytest.raises(ValidationError):
        await office.ledger.bulk_adjust([])
