"""Tests for the product catalog and its categories."""

import pytest

from poscore.config import settings

from conftest import seed_user, sign_in

API = f"{settings.api_prefix}/{settings.api_version}"
PRODUCTS = f"{API}/products"
CATEGORIES = f"{API}/categories"


def as_role(client, store, role, **kwargs):
    return sign_in(client, seed_user(store, role, **kwargs))


def product(**overrides) -> dict:
    return {"name": "Cola 330ml", "sku": "cola-330", "selling_price": 1.5, **overrides}


def create(client, **overrides) -> dict:
    response = client.post(f"{PRODUCTS}/", json=product(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def manager(client, store):
    return as_role(client, store, "STOCK_MANAGER")


class TestProductAccess:
    @pytest.mark.parametrize("role", ["SUPER_ADMIN", "OWNER", "STOCK_MANAGER"])
    def test_catalog_roles_can_create(self, client, store, role):
        as_role(client, store, role)
        assert client.post(f"{PRODUCTS}/", json=product()).status_code == 201

    def test_cashier_cannot_create(self, client, store):
        as_role(client, store, "CASHIER")
        response = client.post(f"{PRODUCTS}/", json=product())
        assert response.status_code == 403
        assert "create_product" in response.json()["error"]["message"]
        assert store.rows("products") == []

    @pytest.mark.parametrize("role", ["CASHIER", "STOCK_MANAGER", "OWNER"])
    def test_catalog_is_readable_at_checkout(self, client, store, role):
        as_role(client, store, "OWNER")
        create(client)
        as_role(client, store, role)
        response = client.get(f"{PRODUCTS}/")
        assert response.status_code == 200
        assert response.json()["data"]["total"] == 1

    def test_anonymous_caller(self, client):
        assert client.get(f"{PRODUCTS}/").status_code == 401

    def test_inactive_account(self, client, store):
        as_role(client, store, "OWNER", active=False)
        assert client.get(f"{PRODUCTS}/").status_code == 403

    def test_cashier_cannot_see_inactive_products(self, client, store):
        as_role(client, store, "CASHIER")
        response = client.get(f"{PRODUCTS}/", params={"include_inactive": True})
        assert response.status_code == 403

    def test_cashier_cannot_delete(self, client, store, manager):
        created = create(client)
        as_role(client, store, "CASHIER")
        assert client.delete(f"{PRODUCTS}/{created['id']}").status_code == 403


class TestProducts:
    def test_sku_is_normalized_and_tenant_is_stamped(self, client, store, manager):
        created = create(client)
        assert created["sku"] == "COLA-330"
        assert created["is_active"] is True
        [row] = store.rows("products")
        assert row["business_id"] == "biz-1"

    def test_invalid_sku(self, client, manager):
        response = client.post(f"{PRODUCTS}/", json=product(sku="cola 330"))
        assert response.status_code == 422

    def test_duplicate_sku(self, client, manager):
        create(client)
        response = client.post(f"{PRODUCTS}/", json=product(name="Other"))
        assert response.status_code == 409

    def test_duplicate_barcode_among_active_products(self, client, manager):
        first = create(client, barcode="5000112")
        response = client.post(f"{PRODUCTS}/", json=product(sku="B", barcode="5000112"))
        assert response.status_code == 409

        client.delete(f"{PRODUCTS}/{first['id']}")
        response = client.post(f"{PRODUCTS}/", json=product(sku="B", barcode="5000112"))
        assert response.status_code == 201

    def test_unknown_category(self, client, manager):
        response = client.post(f"{PRODUCTS}/", json=product(category_id="nope"))
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Unknown category"

    def test_search_and_barcode_lookup(self, client, manager):
        create(client)
        create(client, name="Crisps", sku="CRISP-1", barcode="123")

        found = client.get(f"{PRODUCTS}/", params={"q": "cris"}).json()["data"]
        assert [p["name"] for p in found["products"]] == ["Crisps"]

        found = client.get(f"{PRODUCTS}/", params={"barcode": "123", "q": "cola"}).json()["data"]
        assert [p["name"] for p in found["products"]] == ["Crisps"]

    def test_update(self, client, manager):
        created = create(client)
        response = client.put(f"{PRODUCTS}/{created['id']}", json={"selling_price": 1.75})
        assert response.status_code == 200
        assert response.json()["data"]["selling_price"] == 1.75

    def test_delete_is_soft_and_restorable(self, client, store, manager):
        created = create(client)
        assert client.delete(f"{PRODUCTS}/{created['id']}").status_code == 200
        assert client.get(f"{PRODUCTS}/{created['id']}").status_code == 404
        assert len(store.rows("products")) == 1

        listed = client.get(f"{PRODUCTS}/", params={"include_inactive": True}).json()["data"]
        assert listed["total"] == 1

        assert client.post(f"{PRODUCTS}/{created['id']}/restore").status_code == 200
        assert client.get(f"{PRODUCTS}/{created['id']}").status_code == 200

    def test_other_business_products_are_invisible(self, client, store, manager):
        store.seed(
            "products",
            {"id": "p-2", "business_id": "biz-2", "name": "Theirs", "sku": "T", "is_active": True},
        )
        assert client.get(f"{PRODUCTS}/").json()["data"]["total"] == 0
        assert client.get(f"{PRODUCTS}/p-2").status_code == 404
        assert client.put(f"{PRODUCTS}/p-2", json={"name": "Mine"}).status_code == 404


class TestCategories:
    def test_create_and_list(self, client, manager):
        response = client.post(f"{CATEGORIES}/", json={"name": "Drinks"})
        assert response.status_code == 201
        listed = client.get(f"{CATEGORIES}/").json()["data"]
        assert [c["name"] for c in listed["categories"]] == ["Drinks"]

    def test_duplicate_name_ignores_case(self, client, manager):
        client.post(f"{CATEGORIES}/", json={"name": "Drinks"})
        assert client.post(f"{CATEGORIES}/", json={"name": "drinks "}).status_code == 409

    def test_category_in_use_cannot_be_deleted(self, client, manager):
        category = client.post(f"{CATEGORIES}/", json={"name": "Drinks"}).json()["data"]
        create(client, category_id=category["id"])
        response = client.delete(f"{CATEGORIES}/{category['id']}")
        assert response.status_code == 409

    def test_cashier_reads_but_cannot_manage(self, client, store, manager):
        client.post(f"{CATEGORIES}/", json={"name": "Drinks"})
        as_role(client, store, "CASHIER")
        assert client.get(f"{CATEGORIES}/").status_code == 200
        assert client.post(f"{CATEGORIES}/", json={"name": "Snacks"}).status_code == 403
