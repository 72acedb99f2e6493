import pytest
from sqlalchemy.orm import sessionmaker

from ledger_sync.models.sync import SyncDirection, SyncEntity, SyncRun, SyncRunItem, SyncRunStatus
from ledger_sync.services.reconciler import ItemResult
from ledger_sync.services.sync_ledger import SyncRunLedger, derive_run_status, list_runs


@pytest.mark.parametrize("total, success, errors, expected", [
    (3, 3, 0, SyncRunStatus.COMPLETED),
    (0, 0, 0, SyncRunStatus.COMPLETED),
    (3, 1, 2, SyncRunStatus.PARTIAL),
    (2, 0, 2, SyncRunStatus.FAILED),
])
def test_derive_run_status(total, success, errors, expected):
    assert derive_run_status(total, success, errors) == expected


def test_run_lifecycle_records_items(session_factory):
    ledger = SyncRunLedger(session_factory)

    run_id = ledger.start_run(SyncEntity.STOCK, SyncDirection.IMPORT, {"ip": "10.0.0.1"})
    status = ledger.complete_run(run_id, [
        ItemResult.ok("p1:w1"),
        ItemResult.fail("p2:w1", "Product or warehouse not found"),
    ])

    assert status == SyncRunStatus.PARTIAL
    with session_factory() as s:
        run = s.get(SyncRun, run_id)
        assert run.entity == SyncEntity.STOCK
        assert run.direction == SyncDirection.IMPORT
        assert (run.total_count, run.success_count, run.error_count) == (2, 1, 1)
        assert run.finished_at is not None
        assert run.meta["ip"] == "10.0.0.1"
        assert len(run.request_id) == 32

        items = s.query(SyncRunItem).filter(SyncRunItem.run_id == run_id).order_by(SyncRunItem.id).all()
        assert [(i.key, i.status, i.error) for i in items] == [
            ("p1:w1", "ok", None),
            ("p2:w1", "error", "Product or warehouse not found"),
        ]


def test_fail_run_keeps_meta_and_adds_error(session_factory):
    ledger = SyncRunLedger(session_factory)
    run_id = ledger.start_run(SyncEntity.NOMENCLATURE, SyncDirection.IMPORT, {"path": "/x"})

    ledger.fail_run(run_id, "Validation error", {"details": [{"loc": ["items"]}]})

    with session_factory() as s:
        run = s.get(SyncRun, run_id)
        assert run.status == SyncRunStatus.FAILED
        assert run.meta == {"path": "/x", "details": [{"loc": ["items"]}], "error": "Validation error"}


def test_ledger_failures_are_swallowed(tmp_path):
    # No tables in this database: every write fails
    from ledger_sync.database import build_engine

    broken = sessionmaker(bind=build_engine(f"sqlite:///{tmp_path / 'empty.db'}"))
    ledger = SyncRunLedger(broken)

    run_id = ledger.start_run(SyncEntity.STOCK, SyncDirection.IMPORT)
    assert run_id is None
    assert ledger.complete_run(run_id, [ItemResult.ok("k")]) is None
    ledger.fail_run(run_id, "boom")
    assert ledger.complete_run(12345, [ItemResult.ok("k")]) is None


def test_list_runs_filters_and_orders_newest_first(session_factory):
    ledger = SyncRunLedger(session_factory)
    first = ledger.start_run(SyncEntity.STOCK, SyncDirection.IMPORT)
    second = ledger.start_run(SyncEntity.ORDERS_EXPORT, SyncDirection.EXPORT)
    third = ledger.start_run(SyncEntity.STOCK, SyncDirection.IMPORT)
    ledger.complete_run(third, [])

    with session_factory() as s:
        assert [r.id for r in list_runs(s)] == [third, second, first]
        assert [r.id for r in list_runs(s, entity=SyncEntity.STOCK)] == [third, first]
        assert [r.id for r in list_runs(s, direction=SyncDirection.EXPORT)] == [second]
        assert [r.id for r in list_runs(s, status=SyncRunStatus.COMPLETED)] == [third]
        assert len(list_runs(s, limit=1)) == 1
