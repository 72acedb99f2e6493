from decimal import Decimal

import pytest

from factories import (
    make_address, make_agreement, make_contract, make_counterparty, make_price_type, make_product,
    make_product_price, make_profile, make_special_price, make_warehouse,
)
from ledger_sync.models.order import Order, OrderStatus


@pytest.fixture()
def buyer(db):
    counterparty = make_counterparty(db)
    contract = make_contract(db, counterparty)
    warehouse = make_warehouse(db)
    price_type = make_price_type(db)
    agreement = make_agreement(db, counterparty=counterparty, contract=contract, price_type=price_type,
                               warehouse=warehouse, currency="RUB")
    make_profile(db, user_id=1, counterparty=counterparty, agreement=agreement)

    product = make_product(db, guid="p-1", packages=[("pk-10", 10)])
    make_product_price(db, product, 12, price_type=price_type)
    return {
        "counterparty": counterparty, "contract": contract, "warehouse": warehouse,
        "price_type": price_type, "agreement": agreement, "product": product,
    }


def place(client, headers, **body):
    body.setdefault("items", [{"productGuid": "p-1", "quantity": 2}])
    return client.post("/api/marketplace/orders", json=body, headers=headers)


def test_order_uses_profile_context_and_prices_lines(client, buyer, buyer_headers):
    response = place(client, buyer_headers(), items=[
        {"productGuid": "p-1", "quantity": 2},
        {"productGuid": "p-1", "packageGuid": "pk-10", "quantity": 3},
    ], comment="Leave at gate")

    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "QUEUED"
    assert order["exportAttempts"] == 0
    assert order["queuedAt"] is not None
    assert order["counterparty"]["guid"] == buyer["counterparty"].guid
    assert order["agreement"]["guid"] == buyer["agreement"].guid
    # contract, warehouse and currency come from the agreement
    assert order["contract"]["guid"] == buyer["contract"].guid
    assert order["warehouse"]["guid"] == buyer["warehouse"].guid
    assert order["currency"] == "RUB"
    assert order["comment"] == "Leave at gate"

    plain, packed = order["items"]
    assert (plain["quantity"], plain["quantityBase"], plain["price"], plain["lineAmount"]) == (2, 2, 12, 24)
    assert packed["package"]["guid"] == "pk-10"
    assert (packed["quantity"], packed["quantityBase"], packed["lineAmount"]) == (3, 30, 360)
    assert order["totalAmount"] == 384


def test_quantity_below_minimum_names_the_product(client, db, buyer, buyer_headers):
    make_special_price(db, buyer["product"], 10, agreement=buyer["agreement"], min_qty=5)

    response = place(client, buyer_headers())

    assert response.status_code == 400
    assert response.json()["error"] == "Quantity for product p-1 is below the minimum (5)"


def test_special_price_applies_to_order(client, db, buyer, buyer_headers):
    make_special_price(db, buyer["product"], 10, agreement=buyer["agreement"])

    order = place(client, buyer_headers()).json()

    assert order["items"][0]["price"] == 10
    assert order["totalAmount"] == 20


def test_profile_without_counterparty_cannot_order(client, db, buyer_headers):
    make_product(db, guid="p-1")
    make_profile(db, user_id=7)

    response = place(client, buyer_headers(7))

    assert response.status_code == 400
    assert response.json()["error"] == "Cannot create an order without a counterparty"


def test_unknown_profile_is_not_found(client, buyer, buyer_headers):
    response = place(client, buyer_headers(99))

    assert response.status_code == 404


def test_explicit_null_agreement_drops_profile_default(client, buyer, buyer_headers):
    response = place(client, buyer_headers(), agreementGuid=None)

    # no agreement means no price type, and only a typed price exists
    assert response.status_code == 404
    assert "No applicable price" in response.json()["error"]


def test_contract_of_other_counterparty_is_rejected(client, db, buyer, buyer_headers):
    stranger = make_counterparty(db, guid="cp-2", name="Stranger")
    foreign = make_contract(db, stranger, guid="ct-2", number="X")

    response = place(client, buyer_headers(), contractGuid=foreign.guid)

    assert response.status_code == 400
    assert response.json()["error"] == "Contract does not belong to the selected counterparty"


def test_delivery_address_must_belong_to_counterparty(client, db, buyer, buyer_headers):
    stranger = make_counterparty(db, guid="cp-2", name="Stranger")
    address = make_address(db, stranger, guid="addr-x")

    response = place(client, buyer_headers(), deliveryAddressGuid=address.guid)

    assert response.status_code == 400


def test_foreign_unit_is_rejected(client, buyer, buyer_headers):
    response = place(client, buyer_headers(), items=[{"productGuid": "p-1", "unitGuid": "u-other", "quantity": 1}])

    assert response.status_code == 400


def test_inactive_product_cannot_be_ordered(client, db, buyer, buyer_headers):
    make_product(db, guid="p-off", name="Old", is_active=False)

    response = place(client, buyer_headers(), items=[{"productGuid": "p-off", "quantity": 1}])

    assert response.status_code == 400
    assert response.json()["error"] == "Product p-off is inactive"


def test_non_positive_quantity_fails_validation(client, buyer, buyer_headers):
    response = place(client, buyer_headers(), items=[{"productGuid": "p-1", "quantity": 0}])

    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"


def test_failed_order_leaves_nothing_behind(client, session_factory, buyer, buyer_headers):
    place(client, buyer_headers(), items=[
        {"productGuid": "p-1", "quantity": 1},
        {"productGuid": "p-404", "quantity": 1},
    ])

    with session_factory() as s:
        assert s.query(Order).count() == 0


def test_buyer_lists_and_reads_own_orders(client, db, buyer, buyer_headers):
    first = place(client, buyer_headers()).json()
    second = place(client, buyer_headers()).json()

    listing = client.get("/api/marketplace/orders", headers=buyer_headers()).json()
    assert listing["total"] == 2
    assert [o["guid"] for o in listing["items"]] == [second["guid"], first["guid"]]

    detail = client.get(f"/api/marketplace/orders/{first['guid']}", headers=buyer_headers())
    assert detail.status_code == 200
    assert detail.json()["guid"] == first["guid"]

    # another buyer with another counterparty cannot see it
    other = make_counterparty(db, guid="cp-9", name="Other")
    make_profile(db, user_id=2, counterparty=other)
    assert client.get(f"/api/marketplace/orders/{first['guid']}", headers=buyer_headers(2)).status_code == 404
    assert client.get("/api/marketplace/orders", headers=buyer_headers(2)).json()["total"] == 0


def test_status_filter_on_listing(client, buyer, buyer_headers):
    place(client, buyer_headers())

    response = client.get("/api/marketplace/orders", params={"status": "SHIPPED"}, headers=buyer_headers())

    assert response.json()["total"] == 0


def test_order_totals_are_decimal_exact(client, db, buyer, buyer_headers, session_factory):
    make_special_price(db, buyer["product"], "0.1", agreement=buyer["agreement"])

    order = place(client, buyer_headers(), items=[{"productGuid": "p-1", "quantity": 3}]).json()

    with session_factory() as s:
        stored = s.query(Order).filter_by(guid=order["guid"]).one()
        assert stored.total_amount == Decimal("0.30")
        assert stored.status == OrderStatus.QUEUED


def test_order_total_is_the_sum_of_rounded_lines(client, db, buyer, buyer_headers, session_factory):
    make_special_price(db, buyer["product"], "1.0050", agreement=buyer["agreement"])

    order = place(client, buyer_headers(), items=[
        {"productGuid": "p-1", "quantity": 1},
        {"productGuid": "p-1", "quantity": 1},
    ]).json()

    with session_factory() as s:
        stored = s.query(Order).filter_by(guid=order["guid"]).one()
        assert [item.line_amount for item in stored.items] == [Decimal("1.01"), Decimal("1.01")]
        assert stored.total_amount == Decimal("2.02")
        assert stored.total_amount == sum(item.line_amount for item in stored.items)
