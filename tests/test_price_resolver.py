from decimal import Decimal

import pytest

from factories import (
    make_agreement, make_counterparty, make_price_type, make_product, make_product_price,
    make_special_price, ts,
)
from ledger_sync.exceptions import DomainValidationError, NotFoundError
from ledger_sync.services.price_resolver import (
    MatchLevel, PriceSource, resolve_effective_price,
)

AT = ts(2026, 6, 1)


def test_agreement_rule_beats_global_rule(db):
    product = make_product(db)
    counterparty = make_counterparty(db)
    agreement = make_agreement(db, counterparty=counterparty)
    # the global rule is both newer and started later
    make_special_price(db, product, 80, agreement=agreement, guid="sp-agreement", start=ts(2026, 1, 1))
    make_special_price(db, product, 100, guid="sp-global", start=ts(2026, 5, 1))

    resolved = resolve_effective_price(db, product.guid, agreement_guid=agreement.guid, at=AT)

    assert resolved.source == PriceSource.SPECIAL_PRICE
    assert resolved.level == MatchLevel.AGREEMENT
    assert resolved.rule_guid == "sp-agreement"
    assert resolved.price == Decimal("80")
    # counterparty follows from the agreement
    assert resolved.counterparty_guid == counterparty.guid
    assert resolved.agreement_guid == agreement.guid


def test_rule_pinned_to_other_counterparty_does_not_apply(db):
    product = make_product(db)
    mine = make_counterparty(db, guid="cp-mine")
    other = make_counterparty(db, guid="cp-other", name="Other")
    make_special_price(db, product, 50, counterparty=other)
    make_special_price(db, product, 95, guid="sp-global")

    resolved = resolve_effective_price(db, product.guid, counterparty_guid=mine.guid, at=AT)

    assert resolved.level == MatchLevel.GLOBAL
    assert resolved.price == Decimal("95")


def test_later_start_date_wins_within_level(db):
    product = make_product(db)
    counterparty = make_counterparty(db)
    make_special_price(db, product, 90, counterparty=counterparty, guid="old", start=ts(2026, 1, 1))
    make_special_price(db, product, 85, counterparty=counterparty, guid="new", start=ts(2026, 5, 1))
    make_special_price(db, product, 70, counterparty=counterparty, guid="future", start=ts(2026, 9, 1))

    resolved = resolve_effective_price(db, product.guid, counterparty_guid=counterparty.guid, at=AT)

    assert resolved.rule_guid == "new"
    assert resolved.start_date == ts(2026, 5, 1)


def test_later_start_date_wins_between_agreement_rules(db):
    product = make_product(db)
    agreement = make_agreement(db)
    make_special_price(db, product, 75, agreement=agreement, guid="ag-new", start=ts(2026, 4, 1))
    make_special_price(db, product, 78, agreement=agreement, guid="ag-old", start=ts(2026, 2, 1))

    resolved = resolve_effective_price(db, product.guid, agreement_guid=agreement.guid, at=AT)

    assert resolved.level == MatchLevel.AGREEMENT
    assert resolved.rule_guid == "ag-new"
    assert resolved.price == Decimal("75")


def test_expired_and_inactive_rules_are_ignored(db):
    product = make_product(db)
    make_special_price(db, product, 10, guid="expired", end=ts(2026, 2, 1))
    make_special_price(db, product, 20, guid="disabled", is_active=False)
    make_product_price(db, product, 100, guid="base")

    resolved = resolve_effective_price(db, product.guid, at=AT)

    assert resolved.source == PriceSource.PRODUCT_PRICE
    assert resolved.rule_guid == "base"


def test_window_bounds_are_inclusive(db):
    product = make_product(db)
    make_special_price(db, product, 42, guid="edge", start=AT, end=AT)

    assert resolve_effective_price(db, product.guid, at=AT).rule_guid == "edge"


def test_fallback_prefers_price_type_over_untyped_price(db):
    product = make_product(db)
    retail = make_price_type(db, guid="pt-retail")
    wholesale = make_price_type(db, guid="pt-wholesale", name="Wholesale")
    make_product_price(db, product, 100, guid="untyped")
    make_product_price(db, product, 90, price_type=retail, guid="retail")
    make_product_price(db, product, 70, price_type=wholesale, guid="wholesale")

    resolved = resolve_effective_price(db, product.guid, price_type_guid=retail.guid, at=AT)
    assert resolved.level == MatchLevel.PRICE_TYPE
    assert resolved.rule_guid == "retail"

    # without a price type only untyped prices qualify
    assert resolve_effective_price(db, product.guid, at=AT).rule_guid == "untyped"


def test_price_type_comes_from_agreement(db):
    product = make_product(db)
    wholesale = make_price_type(db, guid="pt-wholesale")
    agreement = make_agreement(db, price_type=wholesale)
    make_product_price(db, product, 100)
    make_product_price(db, product, 70, price_type=wholesale, guid="wholesale")

    resolved = resolve_effective_price(db, product.guid, agreement_guid=agreement.guid, at=AT)

    assert resolved.rule_guid == "wholesale"
    assert resolved.price_type_guid == wholesale.guid


def test_no_price_raises_not_found(db):
    product = make_product(db)

    with pytest.raises(NotFoundError, match="No applicable price"):
        resolve_effective_price(db, product.guid, at=AT)


def test_unknown_and_inactive_entities(db):
    product = make_product(db)
    make_product_price(db, product, 100)
    make_counterparty(db, guid="cp-off", is_active=False)
    make_product(db, guid="p-off", name="Old", is_active=False)

    with pytest.raises(NotFoundError, match="Product p-404 not found"):
        resolve_effective_price(db, "p-404", at=AT)
    with pytest.raises(DomainValidationError, match="Product p-off is inactive"):
        resolve_effective_price(db, "p-off", at=AT)
    with pytest.raises(NotFoundError, match="Agreement ag-404 not found"):
        resolve_effective_price(db, product.guid, agreement_guid="ag-404", at=AT)
    with pytest.raises(DomainValidationError, match="Counterparty cp-off is inactive"):
        resolve_effective_price(db, product.guid, counterparty_guid="cp-off", at=AT)


def test_agreement_of_other_counterparty_is_rejected(db):
    product = make_product(db)
    mine = make_counterparty(db, guid="cp-mine")
    other = make_counterparty(db, guid="cp-other", name="Other")
    agreement = make_agreement(db, counterparty=other)
    make_product_price(db, product, 100)

    with pytest.raises(DomainValidationError, match="does not belong to counterparty"):
        resolve_effective_price(db, product.guid, counterparty_guid=mine.guid, agreement_guid=agreement.guid, at=AT)


def test_resolve_endpoint(client, db, buyer_headers):
    product = make_product(db)
    counterparty = make_counterparty(db)
    make_special_price(db, product, "99.5", counterparty=counterparty, guid="sp-1", min_qty=5)

    response = client.get(
        "/api/marketplace/prices/resolve",
        params={"productGuid": product.guid, "counterpartyGuid": counterparty.guid, "at": "2026-06-01T00:00:00Z"},
        headers=buyer_headers(),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["product"] == {"guid": product.guid, "name": product.name}
    assert body["context"]["counterpartyGuid"] == counterparty.guid
    assert body["match"]["source"] == "SPECIAL_PRICE"
    assert body["match"]["level"] == "COUNTERPARTY"
    assert body["match"]["ruleGuid"] == "sp-1"
    assert body["match"]["minQty"] == 5
    assert body["price"] == {"value": 99.5, "currency": "RUB"}


def test_resolve_endpoint_requires_bearer_token(client):
    response = client.get("/api/marketplace/prices/resolve", params={"productGuid": "p-1"})

    assert response.status_code == 401


def test_resolve_endpoint_reports_missing_price(client, db, buyer_headers):
    product = make_product(db)

    response = client.get("/api/marketplace/prices/resolve", params={"productGuid": product.guid},
                          headers=buyer_headers())

    assert response.status_code == 404
    assert response.json() == {"error": f"No applicable price for product {product.guid}", "code": "NOT_FOUND"}
