import pytest
from sqlalchemy.exc import IntegrityError

from ledger_sync.database import normalize_database_url
from ledger_sync.exceptions import SchemaValidationError
from ledger_sync.models.stock import Warehouse
from ledger_sync.schemas.onec import NomenclatureItem, StockBatch
from ledger_sync.services.nomenclature import order_groups
from ledger_sync.services.reconciler import (
    GuidCache, ItemResult, process_item, upsert_by_guid, upsert_where, validate_payload,
)
from ledger_sync.utils.timeutils import within_window
from factories import ts


def group(guid, parent=None):
    return NomenclatureItem(guid=guid, is_group=True, parent_guid=parent, name=guid)


def test_order_groups_places_parents_first():
    ordered = order_groups([group("c", "b"), group("b", "a"), group("x"), group("a")])

    assert [g.guid for g in ordered] == ["a", "b", "c", "x"]


def test_order_groups_survives_cycles():
    ordered = order_groups([group("a", "b"), group("b", "a")])

    assert sorted(g.guid for g in ordered) == ["a", "b"]


def test_failed_item_rolls_back_only_itself(db):
    def good():
        upsert_by_guid(db, Warehouse, "w-ok", {"name": "Kept"})
        return ItemResult.ok("w-ok")

    def rejected():
        upsert_by_guid(db, Warehouse, "w-rejected", {"name": "Dropped"})
        return ItemResult.fail("w-rejected", "rejected")

    def broken():
        # name is NOT NULL
        upsert_by_guid(db, Warehouse, "w-broken", {"name": None})
        return ItemResult.ok("w-broken")

    results = [
        process_item(db, "w-ok", good, "Failed to upsert warehouse"),
        process_item(db, "w-rejected", rejected, "Failed to upsert warehouse"),
        process_item(db, "w-broken", broken, "Failed to upsert warehouse"),
    ]
    db.commit()

    assert [r.status for r in results] == ["ok", "error", "error"]
    assert results[2].error == "Failed to upsert warehouse"
    assert [w.guid for w in db.query(Warehouse).all()] == ["w-ok"]


def test_upsert_where_matches_null_keys(db):
    first = upsert_where(db, Warehouse, {"guid": "w-1", "code": None}, {"name": "A"})
    second = upsert_where(db, Warehouse, {"guid": "w-1", "code": None}, {"name": "B"})

    assert first is second
    assert second.name == "B"
    assert db.query(Warehouse).count() == 1


def test_unique_guid_is_enforced(db):
    db.add_all([Warehouse(guid="dup", name="a"), Warehouse(guid="dup", name="b")])
    with pytest.raises(IntegrityError):
        db.flush()
    db.rollback()


def test_guid_cache_resolves_remembered_and_stored_rows(db):
    stored = upsert_by_guid(db, Warehouse, "w-db", {"name": "Stored"})
    cache = GuidCache(db, Warehouse)
    cache.remember("w-new", 42)

    assert cache.resolve("w-new") == 42
    assert cache.resolve("w-db") == stored.id
    assert cache.resolve("w-none") is None
    assert cache.resolve(None) is None


def test_validate_payload_collects_details():
    with pytest.raises(SchemaValidationError) as info:
        validate_payload(StockBatch, {"items": [{"productGuid": "p"}]})

    assert info.value.status_code == 400
    missing = {tuple(d["loc"]) for d in info.value.details}
    assert ("items", 0, "warehouseGuid") in missing


def test_validate_payload_rejects_missing_body():
    with pytest.raises(SchemaValidationError):
        validate_payload(StockBatch, None)


def test_item_result_serialization():
    assert ItemResult.ok("k").as_dict() == {"key": "k", "status": "ok"}
    assert ItemResult.fail("k", "bad").as_dict() == {"key": "k", "status": "error", "error": "bad"}


def test_within_window_open_bounds():
    at = ts(2026, 6, 1)
    assert within_window(at, None, None)
    assert within_window(at, ts(2026, 6, 1), ts(2026, 6, 1))
    assert not within_window(at, ts(2026, 7, 1), None)
    assert not within_window(at, None, ts(2026, 5, 1))


def test_postgres_scheme_is_normalized():
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql://u:p@h/db"
    assert normalize_database_url("sqlite:///x.db") == "sqlite:///x.db"
