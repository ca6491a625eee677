"""Tests for ringing up sales and refunding them."""

from datetime import datetime, timedelta, timezone

import pytest

from poscore.config import settings
from poscore.sales import settle_payment
from poscore.sales.schemas import PaymentMethod
from poscore.utils.exceptions import ValidationError

from conftest import seed_user, sign_in

API = f"{settings.api_prefix}/{settings.api_version}"
SALES = f"{API}/sales"
REFUNDS = f"{API}/refunds"

REASON = "Customer changed their mind"


def as_role(client, store, role):
    return sign_in(client, seed_user(store, role))


@pytest.fixture(autouse=True)
def catalog(store):
    for row in (
        {"id": "p-cola", "name": "Cola", "sku": "COLA", "selling_price": 2.0, "taxable": True},
        {"id": "p-bread", "name": "Bread", "sku": "BREAD", "selling_price": 3.0, "taxable": False},
        {"id": "p-old", "name": "Old", "sku": "OLD", "selling_price": 1.0, "is_active": False},
    ):
        store.seed("products", {"business_id": "biz-1", "is_active": True, **row})


@pytest.fixture
def cashier(client, store):
    return as_role(client, store, "CASHIER")


def basket(**overrides) -> dict:
    # 2 x cola (taxed at 15%) + 1 x bread (untaxed) = 7.00 + 0.60 tax
    return {
        "items": [
            {"product_id": "p-cola", "quantity": 2},
            {"product_id": "p-bread", "quantity": 1},
        ],
        "payment_method": "CASH",
        "cash_received": 10,
        **overrides,
    }


def ring_up(client, **overrides) -> dict:
    response = client.post(f"{SALES}/", json=basket(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def refund(client, sale, *lines, **overrides):
    payload = {
        "sale_id": sale["id"],
        "items": [{"sale_item_id": item_id, "quantity": qty} for item_id, qty in lines],
        "reason": REASON,
        "payment_method": "CASH",
        **overrides,
    }
    return client.post(f"{REFUNDS}/", json=payload)


def line_id(sale, product_id) -> str:
    return next(i["id"] for i in sale["items"] if i["product_id"] == product_id)


def cashier_identity(store) -> str:
    return next(p["id"] for p in store.rows("profiles") if p["role"] == "CASHIER")


class TestSaleAccess:
    @pytest.mark.parametrize("role", ["CASHIER", "OWNER"])
    def test_checkout_roles_can_sell(self, client, store, role):
        as_role(client, store, role)
        assert client.post(f"{SALES}/", json=basket()).status_code == 201

    @pytest.mark.parametrize("role", ["SUPER_ADMIN", "STOCK_MANAGER"])
    def test_other_roles_cannot_sell(self, client, store, role):
        as_role(client, store, role)
        response = client.post(f"{SALES}/", json=basket())
        assert response.status_code == 403
        assert store.rows("sales") == []

    def test_stock_manager_cannot_see_transactions(self, client, store):
        as_role(client, store, "STOCK_MANAGER")
        assert client.get(f"{SALES}/").status_code == 403

    def test_anonymous_caller(self, client):
        assert client.post(f"{SALES}/", json=basket()).status_code == 401


class TestCreateSale:
    def test_prices_and_tax_come_from_the_server(self, client, store, cashier):
        items = [{"product_id": "p-cola", "quantity": 2, "unit_price": 0.01}]
        sale = ring_up(client, items=items + [{"product_id": "p-bread", "quantity": 1}])

        assert sale["subtotal"] == 7.0
        assert sale["tax_amount"] == 0.6
        assert sale["total"] == 7.6
        assert sale["cash_change"] == 2.4
        assert sale["cashier_id"] == cashier_identity(store)
        assert sale["sale_number"].startswith("SALE-")
        assert sale["refund_status"] is None

        [row] = store.rows("sales")
        assert row["business_id"] == "biz-1"
        assert row["version"] == 0
        cola = next(i for i in row["items"] if i["product_id"] == "p-cola")
        assert cola["unit_price"] == 2.0
        assert cola["quantity_refunded"] == 0

    def test_discount(self, client, cashier):
        sale = ring_up(client, discount=1.6)
        assert sale["total"] == 6.0

    def test_discount_over_subtotal(self, client, cashier):
        response = client.post(f"{SALES}/", json=basket(discount=7.5))
        assert response.status_code == 400

    def test_insufficient_cash(self, client, store, cashier):
        response = client.post(f"{SALES}/", json=basket(cash_received=5))
        assert response.status_code == 400
        assert "Insufficient cash" in response.json()["error"]["message"]
        assert store.rows("sales") == []

    def test_card_must_match_total(self, client, cashier):
        response = client.post(f"{SALES}/", json=basket(payment_method="CARD", card_amount=7))
        assert response.status_code == 400
        sale = ring_up(client, payment_method="CARD", card_amount=7.6)
        assert sale["card_amount"] == 7.6

    def test_mixed_payment(self, client, cashier):
        sale = ring_up(client, payment_method="MIXED", card_amount=5, cash_received=3)
        assert sale["cash_change"] == 0.4

    @pytest.mark.parametrize("product_id", ["p-old", "p-missing"])
    def test_unavailable_product(self, client, cashier, product_id):
        items = [{"product_id": product_id, "quantity": 1}]
        response = client.post(f"{SALES}/", json=basket(items=items))
        assert response.status_code == 400

    def test_unknown_customer(self, client, cashier):
        response = client.post(f"{SALES}/", json=basket(customer_id="c-missing"))
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Unknown customer"

    def test_empty_basket(self, client, cashier):
        assert client.post(f"{SALES}/", json=basket(items=[])).status_code == 422

    def test_storage_failure(self, client, store, cashier):
        store.fail_on.add(("insert", "sales"))
        assert client.post(f"{SALES}/", json=basket()).status_code == 503


class TestListSales:
    def test_date_range(self, client, store, cashier):
        old = ring_up(client)
        ring_up(client)
        store.rows("sales")[0]["created_at"] = datetime(2020, 1, 1, tzinfo=timezone.utc)

        today = datetime.now(timezone.utc).date().isoformat()
        listed = client.get(f"{SALES}/", params={"start_date": today}).json()["data"]
        assert listed["total"] == 1
        assert listed["sales"][0]["id"] != old["id"]

        listed = client.get(f"{SALES}/", params={"end_date": "2020-01-31"}).json()["data"]
        assert [s["id"] for s in listed["sales"]] == [old["id"]]

    def test_other_business_sales_are_invisible(self, client, store, cashier):
        store.seed("sales", {"id": "s-2", "business_id": "biz-2", "created_at": datetime.now(timezone.utc)})
        assert client.get(f"{SALES}/").json()["data"]["total"] == 0
        assert client.get(f"{SALES}/s-2").status_code == 404


class TestRefunds:
    def test_partial_then_full(self, client, store, cashier):
        sale = ring_up(client)
        cola = line_id(sale, "p-cola")

        response = refund(client, sale, (cola, 1))
        assert response.status_code == 201
        first = response.json()["data"]
        assert first["refund_number"].startswith("REF-")
        assert first["total"] == 2.3
        assert first["refund_type"] == "PARTIAL"

        [row] = store.rows("sales")
        assert row["refund_status"] == "PARTIAL"
        assert row["total_refunded"] == 2.3
        assert row["version"] == 1

        response = refund(client, sale, (cola, 1), (line_id(sale, "p-bread"), 1))
        assert response.status_code == 201
        [row] = store.rows("sales")
        assert row["refund_status"] == "FULL"
        assert row["total_refunded"] == 7.6

        listed = client.get(f"{REFUNDS}/", params={"sale_id": sale["id"]}).json()["data"]
        assert listed["count"] == 2
        assert listed["totalRefunded"] == 7.6

    def test_cannot_refund_more_than_was_sold(self, client, store, cashier):
        sale = ring_up(client)
        cola = line_id(sale, "p-cola")
        refund(client, sale, (cola, 2))

        response = refund(client, sale, (cola, 1))
        assert response.status_code == 400
        assert "exceeds available" in response.json()["error"]["message"]
        assert len(store.rows("refunds")) == 1

    def test_same_line_twice(self, client, cashier):
        sale = ring_up(client)
        cola = line_id(sale, "p-cola")
        assert refund(client, sale, (cola, 1), (cola, 1)).status_code == 400

    def test_unknown_line(self, client, cashier):
        sale = ring_up(client)
        assert refund(client, sale, ("no-such-line", 1)).status_code == 400

    def test_unknown_sale(self, client, cashier):
        response = refund(client, {"id": "s-missing"}, ("x", 1))
        assert response.status_code == 404

    def test_reason_is_required(self, client, cashier):
        sale = ring_up(client)
        response = refund(client, sale, (line_id(sale, "p-cola"), 1), reason="meh")
        assert response.status_code == 422

    def test_refund_window(self, client, store, cashier):
        sale = ring_up(client)
        store.rows("businesses")[0]["refund_time_limit_days"] = 7
        store.rows("sales")[0]["created_at"] = datetime.now(timezone.utc) - timedelta(days=8)

        response = refund(client, sale, (line_id(sale, "p-cola"), 1))
        assert response.status_code == 400
        assert "Refund period expired" in response.json()["error"]["message"]

    def test_sale_changed_by_a_concurrent_refund(self, client, store, cashier):
        sale = ring_up(client)
        original_update = store.update

        async def other_refund_lands_first(table, values, **where):
            if table == "sales":
                store.rows("sales")[0]["version"] += 1
            return await original_update(table, values, **where)

        store.update = other_refund_lands_first
        response = refund(client, sale, (line_id(sale, "p-cola"), 1))

        assert response.status_code == 409
        assert store.rows("refunds") == []
        assert store.rows("sales")[0]["refund_status"] is None

    def test_sale_update_failure_removes_the_refund(self, client, store, cashier):
        sale = ring_up(client)
        store.fail_on.add(("update", "sales"))
        response = refund(client, sale, (line_id(sale, "p-cola"), 1))
        assert response.status_code == 503
        assert store.rows("refunds") == []

    @pytest.mark.parametrize("role", ["STOCK_MANAGER"])
    def test_denied_roles(self, client, store, cashier, role):
        sale = ring_up(client)
        as_role(client, store, role)
        assert refund(client, sale, (line_id(sale, "p-cola"), 1)).status_code == 403
        assert client.get(f"{REFUNDS}/").status_code == 403

    def test_super_admin_can_review_refunds(self, client, store, cashier):
        sale = ring_up(client)
        created = refund(client, sale, (line_id(sale, "p-cola"), 1)).json()["data"]
        as_role(client, store, "SUPER_ADMIN")
        assert client.get(f"{REFUNDS}/{created['id']}").status_code == 200


class TestSettlePayment:
    def test_cash_defaults_to_exact_amount(self):
        assert settle_payment(PaymentMethod.CASH, 7.6, None, None)["cash_change"] == 0.0

    def test_mixed_needs_a_card_part(self):
        with pytest.raises(ValidationError):
            settle_payment(PaymentMethod.MIXED, 7.6, 10, None)

    def test_mixed_card_over_total(self):
        with pytest.raises(ValidationError):
            settle_payment(PaymentMethod.MIXED, 7.6, 0, 8)


def test_owner_sets_the_refund_window(client, store):
    as_role(client, store, "OWNER")
    response = client.put(f"{API}/settings/", json={"refund_time_limit_days": 30})
    assert response.status_code == 200
    assert store.rows("businesses")[0]["refund_time_limit_days"] == 30
