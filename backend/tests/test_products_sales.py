# Overview: Pytest coverage for the organization catalog, inventory, append-only sales and email signups.

"""
Products & Sales Tests

1. Catalog upsert (last write wins) and delete
2. Restock and sale-driven inventory (clamped at zero)
3. Append-only sales: re-sent ids are skipped, never rewritten
4. Tenant isolation between organizations sharing product ids
"""

import pytest

from conftest import auth_headers, line_item, sale_payload, token_for
from roaddog.models import Product, Sale
from roaddog.records import ProductRecord, SaleRecord
from roaddog.services import organization_service, products_service, sales_service
from roaddog.services.products_service import ProductError, ProductNotFoundError
from roaddog.services.sales_service import SaleError


def _product(product_id="p-shirt", **overrides) -> ProductRecord:
    payload = {
        "id": product_id,
        "name": "Tour Tee",
        "price": 20,
        "category": "Apparel",
        "sizes": ["S", "M"],
        "inventory": {"S": 5, "M": 5},
    }
    payload.update(overrides)
    return ProductRecord.from_payload(payload)


def _sale(sale_id, items, total, **extra) -> SaleRecord:
    return SaleRecord.from_payload(sale_payload(sale_id, items, total, **extra))


class TestCatalog:

    def test_last_write_wins(self, organization):
        products_service.upsert_products(organization.id, [_product(price=20)])
        products_service.upsert_products(organization.id, [_product(price=18, name="Tour Tee v2")])

        stored = products_service.get_product(organization.id, "p-shirt")
        assert stored.price == 18.0
        assert stored.name == "Tour Tee v2"
        assert Product.query.filter_by(organization_id=organization.id).count() == 1

    def test_delete(self, organization):
        products_service.upsert_products(organization.id, [_product()])
        products_service.delete_product(organization.id, "p-shirt")
        with pytest.raises(ProductNotFoundError):
            products_service.delete_product(organization.id, "p-shirt")

    def test_inventory_value(self, organization):
        products_service.upsert_products(organization.id, [
            _product(),
            _product("p-vinyl", name="Vinyl LP", price=25, sizes=[], inventory={"default": 4}),
            _product("p-sticker", name="Sticker", price=2, sizes=[], inventory=None),
        ])
        assert products_service.inventory_value(organization.id) == 300.0


class TestInventory:

    def test_restock_size(self, organization):
        products_service.upsert_products(organization.id, [_product()])
        product = products_service.restock(organization.id, "p-shirt", 3, size="M")
        assert product.inventory == {"S": 5, "M": 8}

    def test_restock_unsized_uses_default_bucket(self, organization):
        products_service.upsert_products(organization.id, [_product("p-vinyl", sizes=[], inventory=None)])
        product = products_service.restock(organization.id, "p-vinyl", 2)
        assert product.inventory == {"default": 2}

    def test_restock_unknown_size(self, organization):
        products_service.upsert_products(organization.id, [_product()])
        with pytest.raises(ProductError) as exc:
            products_service.restock(organization.id, "p-shirt", 1, size="XXL")
        assert exc.value.details == {"sizes": ["S", "M"]}

    @pytest.mark.parametrize("quantity", [0, -2, "3", 1.5, True, None])
    def test_restock_quantity_must_be_positive_integer(self, organization, quantity):
        with pytest.raises(ProductError):
            products_service.restock(organization.id, "p-shirt", quantity)

    def test_sale_decrements_and_clamps_at_zero(self, organization, member):
        products_service.upsert_products(organization.id, [_product()])

        sales_service.record_sales(organization.id, [
            _sale("s1", [line_item("p-shirt", "Tour Tee", 2, 20, "M")], 40),
            _sale("s2", [line_item("p-shirt", "Tour Tee", 9, 20, "S")], 180),
        ], member.id)

        inventory = products_service.get_product(organization.id, "p-shirt").inventory
        assert inventory == {"S": 0, "M": 3}

    def test_unknown_product_is_ignored(self, organization):
        result = sales_service.record_sales(organization.id, [
            _sale("s1", [line_item("ghost", "Ghost", 1, 5)], 5),
        ])
        assert result == {"recorded": ["s1"], "skipped": []}


class TestAppendOnlySales:

    def test_resent_sale_is_skipped_and_unchanged(self, organization):
        products_service.upsert_products(organization.id, [_product()])
        items = [line_item("p-shirt", "Tour Tee", 1, 20, "M")]

        first = sales_service.record_sales(organization.id, [_sale("s1", items, 20)])
        again = sales_service.record_sales(organization.id, [_sale("s1", items, 20, actualAmount=10)])

        assert first["recorded"] == ["s1"]
        assert again == {"recorded": [], "skipped": ["s1"]}
        stored = Sale.query.filter_by(organization_id=organization.id, id="s1").one()
        assert stored.actual_amount == 20.0
        # Inventory moved once
        assert products_service.get_product(organization.id, "p-shirt").inventory["M"] == 4

    def test_duplicate_ids_in_one_batch(self, organization):
        items = [line_item("p1", "Hat", 1, 5)]
        with pytest.raises(SaleError):
            sales_service.record_sales(organization.id, [_sale("s1", items, 5), _sale("s1", items, 5)])
        assert Sale.query.count() == 0

    def test_historic_import_leaves_inventory(self, organization):
        products_service.upsert_products(organization.id, [_product()])
        sales_service.record_sales(
            organization.id,
            [_sale("s1", [line_item("p-shirt", "Tour Tee", 2, 20, "M")], 40)],
            adjust_inventory=False,
        )
        assert products_service.get_product(organization.id, "p-shirt").inventory["M"] == 5

    def test_mark_synced_only_changes_unsynced(self, organization):
        items = [line_item("p1", "Hat", 1, 5)]
        sales_service.record_sales(organization.id, [_sale("s1", items, 5), _sale("s2", items, 5)])

        assert sales_service.mark_synced(organization.id, ["s1", "missing"]) == 1
        assert sales_service.mark_synced(organization.id, ["s1", "s2"]) == 1
        assert sales_service.mark_synced(organization.id, []) == 0

    def test_list_bounds_newest_first(self, organization):
        items = [line_item("p1", "Hat", 1, 5)]
        sales_service.record_sales(organization.id, [
            _sale("s1", items, 5, timestamp="2025-10-24T12:00:00Z"),
            _sale("s2", items, 5, timestamp="2025-10-25T12:00:00Z"),
            _sale("s3", items, 5, timestamp="2025-10-26T12:00:00Z"),
        ])

        sales = sales_service.list_sales(organization.id)
        assert [s.id for s in sales] == ["s3", "s2", "s1"]
        after = sales_service.list_sales_after(organization.id, sales[2].timestamp)
        assert [s.id for s in after] == ["s2", "s3"]


class TestTenantIsolation:

    @pytest.fixture
    def other_org(self, outsider):
        return organization_service.create_organization(outsider.id, "Other Band")

    def test_same_product_id_in_two_organizations(self, organization, other_org):
        products_service.upsert_products(organization.id, [_product(price=20)])
        products_service.upsert_products(other_org.id, [_product(price=99)])

        assert products_service.get_product(organization.id, "p-shirt").price == 20.0
        assert products_service.get_product(other_org.id, "p-shirt").price == 99.0

    def test_routes_only_show_own_organization(self, client, organization, other_org, outsider, owner_headers):
        products_service.upsert_products(other_org.id, [_product("p-theirs", name="Theirs")])
        products_service.upsert_products(organization.id, [_product("p-ours", name="Ours")])

        ours = client.get("/api/products", headers=owner_headers).get_json()["products"]
        theirs_via_our_token = client.get(
            "/api/products",
            headers=auth_headers(owner_headers["Authorization"].split(" ", 1)[1], other_org.id),
        )

        assert [p["id"] for p in ours] == ["p-ours"]
        assert theirs_via_our_token.status_code == 403

    def test_same_sale_id_in_two_organizations(self, organization, other_org):
        items = [line_item("p1", "Hat", 1, 5)]
        sales_service.record_sales(organization.id, [_sale("s1", items, 5)])
        result = sales_service.record_sales(other_org.id, [_sale("s1", items, 5)])
        assert result["recorded"] == ["s1"]


class TestProductRoutes:

    def test_admin_saves_and_viewer_lists(self, client, admin_headers, viewer_headers):
        body = {"products": [{"id": "p1", "name": "Hat", "price": 15, "inventory": {"default": 2}}]}

        saved = client.post("/api/products", json=body, headers=admin_headers)
        listed = client.get("/api/products", headers=viewer_headers)

        assert saved.status_code == 200
        assert listed.get_json()["products"][0]["inventory"] == {"default": 2}

    def test_member_cannot_edit_catalog(self, client, member_headers):
        response = client.post("/api/products", json={"products": []}, headers=member_headers)
        assert response.status_code == 403

    def test_invalid_product(self, client, admin_headers):
        response = client.post("/api/products", json={"products": [{"id": "p1", "price": 3}]}, headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()["details"] == {"field": "name"}

    def test_products_must_be_list(self, client, admin_headers):
        response = client.post("/api/products", json={"products": {"id": "p1"}}, headers=admin_headers)
        assert response.status_code == 400

    def test_restock_route(self, client, organization, admin_headers):
        products_service.upsert_products(organization.id, [_product()])

        ok = client.post("/api/products/p-shirt/restock", json={"quantity": 2, "size": "S"}, headers=admin_headers)
        text_quantity = client.post("/api/products/p-shirt/restock", json={"quantity": "2"}, headers=admin_headers)
        missing = client.post("/api/products/nope/restock", json={"quantity": 2}, headers=admin_headers)

        assert ok.get_json()["product"]["inventory"]["S"] == 7
        assert text_quantity.status_code == 400
        assert missing.status_code == 404

    def test_delete_route(self, client, organization, admin_headers):
        products_service.upsert_products(organization.id, [_product()])
        assert client.delete("/api/products/p-shirt", headers=admin_headers).status_code == 200
        assert client.delete("/api/products/p-shirt", headers=admin_headers).status_code == 404


class TestSaleRoutes:

    def test_member_records_sales(self, client, member_headers):
        sales = [sale_payload("s1", [line_item("p1", "Hat", 1, 5)], 5)]

        first = client.post("/api/sales", json={"sales": sales}, headers=member_headers)
        second = client.post("/api/sales", json={"sales": sales}, headers=member_headers)

        assert first.get_json()["recorded"] == ["s1"]
        assert second.get_json()["skipped"] == ["s1"]

    def test_viewer_cannot_record(self, client, viewer_headers):
        response = client.post("/api/sales", json={"sales": []}, headers=viewer_headers)
        assert response.status_code == 403

    def test_inconsistent_amounts(self, client, member_headers):
        bad = sale_payload("s1", [line_item("p1", "Hat", 1, 30)], 30, actualAmount=20, discount=5)
        response = client.post("/api/sales", json={"sales": [bad]}, headers=member_headers)
        assert response.status_code == 400
        assert response.get_json()["details"] == {"field": "actualAmount"}

    def test_duplicate_batch_ids(self, client, member_headers):
        sale = sale_payload("s1", [line_item("p1", "Hat", 1, 5)], 5)
        response = client.post("/api/sales", json={"sales": [sale, sale]}, headers=member_headers)
        assert response.status_code == 400
        assert response.get_json() == {"error": "Duplicate sale ids in batch"}

    def test_list_with_bounds(self, client, member_headers):
        sales = [
            sale_payload("s1", [line_item("p1", "Hat", 1, 5)], 5, timestamp="2025-10-25T12:00:00Z"),
            sale_payload("s2", [line_item("p1", "Hat", 1, 5)], 5, timestamp="2025-10-26T12:00:00Z"),
        ]
        client.post("/api/sales", json={"sales": sales}, headers=member_headers)

        listed = client.get("/api/sales?start=2025-10-26", headers=member_headers).get_json()["sales"]
        bad = client.get("/api/sales?start=yesterday", headers=member_headers)

        assert [s["id"] for s in listed] == ["s2"]
        assert listed[0]["timestamp"] == "2025-10-26T12:00:00Z"
        assert bad.status_code == 400

    def test_mark_synced(self, client, member_headers):
        client.post("/api/sales", json={"sales": [sale_payload("s1", [line_item("p1", "Hat", 1, 5)], 5)]}, headers=member_headers)
        response = client.post("/api/sales/mark-synced", json={"saleIds": ["s1"]}, headers=member_headers)
        assert response.get_json() == {"success": True, "updated": 1}


class TestEmailSignupRoutes:

    def test_record_and_list(self, client, member_headers, viewer_headers):
        created = client.post(
            "/api/email-signups",
            json={"id": "email-1", "email": "fan@example.com", "saleId": "s1"},
            headers=member_headers,
        )
        resent = client.post(
            "/api/email-signups",
            json={"id": "email-1", "email": "changed@example.com"},
            headers=member_headers,
        )
        listed = client.get("/api/email-signups", headers=viewer_headers).get_json()["signups"]

        assert created.status_code == 201
        assert created.get_json()["signup"]["source"] == "post-checkout"
        assert resent.get_json()["signup"]["email"] == "fan@example.com"
        assert [s["email"] for s in listed] == ["fan@example.com"]

    def test_invalid_email(self, client, member_headers):
        response = client.post("/api/email-signups", json={"email": "not-an-email"}, headers=member_headers)
        assert response.status_code == 400
