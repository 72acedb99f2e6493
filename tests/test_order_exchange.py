from datetime import timedelta
from decimal import Decimal

from factories import SECRET, add, make_counterparty, make_product, ts
from ledger_sync.models.order import Order, OrderItem, OrderStatus
from ledger_sync.models.sync import SyncEntity, SyncRun, SyncRunItem, SyncRunStatus


def make_order(db, counterparty, product, guid, queued_at, status=OrderStatus.QUEUED):
    return add(db, Order(
        guid=guid,
        status=status,
        counterparty_id=counterparty.id,
        total_amount=Decimal("10"),
        currency="RUB",
        queued_at=queued_at,
        export_attempts=0,
        items=[OrderItem(product_id=product.id, quantity=Decimal("1"), quantity_base=Decimal("1"),
                         price=Decimal("10"), line_amount=Decimal("10"))],
    ))


def seed_orders(db):
    counterparty = make_counterparty(db)
    product = make_product(db)
    base = ts(2026, 4, 1)
    make_order(db, counterparty, product, "o-3", base + timedelta(hours=3))
    make_order(db, counterparty, product, "o-1", base + timedelta(hours=1))
    make_order(db, counterparty, product, "o-2", base + timedelta(hours=2))
    make_order(db, counterparty, product, "o-sent", base, status=OrderStatus.SENT_TO_1C)
    make_order(db, counterparty, product, "o-done", base, status=OrderStatus.DELIVERED)


def fetch_order(session_factory, guid):
    with session_factory() as s:
        order = s.query(Order).filter_by(guid=guid).one()
        s.expunge(order)
        return order


def test_queued_orders_oldest_first(client, db, session_factory):
    seed_orders(db)

    response = client.get("/api/1c/orders/queued", params={"secret": SECRET, "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert [o["guid"] for o in body["orders"]] == ["o-1", "o-2"]
    assert body["orders"][0]["items"][0]["product"]["guid"] == "prod-1"

    # listing is read-only
    assert fetch_order(session_factory, "o-1").status == OrderStatus.QUEUED
    with session_factory() as s:
        run = s.query(SyncRun).one()
        assert run.entity == SyncEntity.ORDERS_EXPORT
        assert run.status == SyncRunStatus.COMPLETED
        assert run.total_count == 2
        assert run.meta["limit"] == 2


def test_queued_orders_can_include_sent(client, db):
    seed_orders(db)

    response = client.get("/api/1c/orders/queued", params={"secret": SECRET, "includeSent": "true"})

    assert [o["guid"] for o in response.json()["orders"]] == ["o-sent", "o-1", "o-2", "o-3"]


def test_queued_orders_limit_is_bounded(client):
    response = client.get("/api/1c/orders/queued", params={"secret": SECRET, "limit": 201})

    assert response.status_code == 400


def test_queued_orders_need_secret(client, session_factory):
    assert client.get("/api/1c/orders/queued").status_code == 401
    with session_factory() as s:
        assert s.query(SyncRun).count() == 0


def test_successful_ack_marks_order_sent(client, db, session_factory):
    seed_orders(db)

    response = client.post("/api/1c/orders/o-1/ack", json={
        "secret": SECRET, "number1c": "ZK-0001", "date1c": "2026-04-02T09:00:00Z",
    })

    assert response.status_code == 200
    body = response.json()["order"]
    assert body["status"] == "SENT_TO_1C"
    assert body["number1c"] == "ZK-0001"
    assert body["sentTo1cAt"] is not None
    assert body["exportAttempts"] == 1

    order = fetch_order(session_factory, "o-1")
    assert order.last_export_error is None
    with session_factory() as s:
        run = s.query(SyncRun).one()
        assert run.entity == SyncEntity.ORDER_ACK
        assert run.status == SyncRunStatus.COMPLETED


def test_failed_ack_requeues_and_records_error(client, db, session_factory):
    seed_orders(db)
    client.post("/api/1c/orders/o-sent/ack", json={"secret": SECRET, "error": "  "})

    response = client.post("/api/1c/orders/o-sent/ack", json={"secret": SECRET, "error": "Unknown counterparty"})

    body = response.json()["order"]
    assert body["status"] == "QUEUED"
    assert body["lastExportError"] == "Unknown counterparty"
    assert body["sentTo1cAt"] is None
    assert body["exportAttempts"] == 2

    with session_factory() as s:
        failed = s.query(SyncRun).order_by(SyncRun.id.desc()).first()
        assert failed.status == SyncRunStatus.FAILED
        item = s.query(SyncRunItem).filter_by(run_id=failed.id).one()
        assert (item.key, item.status, item.error) == ("o-sent", "error", "Unknown counterparty")


def test_failed_ack_keeps_status_reported_by_ledger(client, db):
    seed_orders(db)

    body = client.post("/api/1c/orders/o-done/ack", json={"secret": SECRET, "error": "resend failed"}).json()

    assert body["order"]["status"] == "DELIVERED"
    assert body["order"]["lastExportError"] == "resend failed"


def test_ack_with_explicit_status(client, db):
    seed_orders(db)

    body = client.post("/api/1c/orders/o-2/ack", json={"secret": SECRET, "status": "CONFIRMED"}).json()

    assert body["order"]["status"] == "CONFIRMED"


def test_ack_for_unknown_order(client, session_factory):
    response = client.post("/api/1c/orders/missing/ack", json={"secret": SECRET})

    assert response.status_code == 404
    with session_factory() as s:
        run = s.query(SyncRun).one()
        assert run.status == SyncRunStatus.FAILED
        assert run.meta["orderGuid"] == "missing"


def test_status_batch_updates_known_orders(client, db, session_factory):
    seed_orders(db)

    response = client.post("/api/1c/orders/status/batch", json={
        "secret": SECRET,
        "items": [
            {"guid": "o-1", "status": "SHIPPED", "number1c": "ZK-7", "totalAmount": "12.50"},
            {"guid": "o-404", "status": "CANCELLED"},
        ],
    })

    assert response.status_code == 200
    assert response.json()["results"] == [
        {"key": "o-1", "status": "ok"},
        {"key": "o-404", "status": "error", "error": "Order o-404 not found"},
    ]
    order = fetch_order(session_factory, "o-1")
    assert order.status == OrderStatus.SHIPPED
    assert order.number_1c == "ZK-7"
    assert order.total_amount == Decimal("12.50")
    assert order.currency == "RUB"
    assert order.last_status_sync_at is not None


def test_status_batch_rejects_unknown_status(client, db):
    seed_orders(db)

    response = client.post("/api/1c/orders/status/batch", json={
        "secret": SECRET, "items": [{"guid": "o-1", "status": "LOST"}],
    })

    assert response.status_code == 400


def test_sync_runs_api(client, db):
    seed_orders(db)
    client.get("/api/1c/orders/queued", params={"secret": SECRET})
    client.post("/api/1c/orders/status/batch", json={
        "secret": SECRET, "items": [{"guid": "o-404", "status": "CANCELLED"}],
    })

    listing = client.get("/api/1c/sync/runs", params={"secret": SECRET}).json()
    assert listing["count"] == 2
    assert [r["entity"] for r in listing["runs"]] == ["ORDER_STATUS", "ORDERS_EXPORT"]

    failed = client.get("/api/1c/sync/runs", params={"secret": SECRET, "status": "FAILED"}).json()
    [run] = failed["runs"]
    assert run["errorCount"] == 1

    detail = client.get(f"/api/1c/sync/runs/{run['id']}", params={"secret": SECRET, "includeItems": "true"})
    assert detail.status_code == 200
    assert detail.json()["run"]["items"][0]["error"] == "Order o-404 not found"

    without_items = client.get(f"/api/1c/sync/runs/{run['id']}", params={"secret": SECRET}).json()
    assert without_items["run"].get("items") is None

    assert client.get("/api/1c/sync/runs/9999", params={"secret": SECRET}).status_code == 404
