# Overview: Pytest coverage for read-only sales analytics over the stored ledger.

from datetime import date, datetime

from roaddog.services import analytics_service, products_service


class TestAnalyticsService:

    def test_quick_stats(self, organization, tour_sales):
        assert analytics_service.quick_stats(organization.id) == {
            "totalRevenue": 80.0,
            "numberOfSales": 3,
            "averageSale": 26.67,
            "topProduct": "Tour Tee",
            "topSize": "M",
            "inventoryValue": 215.0,
        }

    def test_quick_stats_empty(self, organization):
        stats = analytics_service.quick_stats(organization.id)
        assert stats["averageSale"] == 0.0
        assert stats["topProduct"] == "N/A"
        assert stats["topSize"] == "N/A"

    def test_start_bound(self, organization, tour_sales):
        stats = analytics_service.quick_stats(organization.id, start=datetime(2025, 10, 26))
        assert stats["totalRevenue"] == 60.0
        assert stats["numberOfSales"] == 2

    def test_daily_revenue_newest_first(self, organization, tour_sales):
        days = analytics_service.daily_revenue(organization.id)

        assert [d["date"] for d in days] == ["2025-10-26", "2025-10-25"]
        assert days[0]["numberOfSales"] == 2
        assert days[0]["revenue"] == 60.0
        assert days[0]["paymentBreakdown"] == {"cash": 40.0, "Venmo": 20.0}
        assert days[1]["tips"] == 3.0

    def test_product_performance(self, organization, tour_sales):
        products = analytics_service.product_performance(organization.id)
        assert products[0] == {
            "productId": "p-shirt",
            "productName": "Tour Tee",
            "quantitySold": 3,
            "revenue": 60.0,
            "category": "Apparel",
        }
        assert products[1]["category"] == "Music"

    def test_payment_breakdown_percentages(self, organization, tour_sales):
        methods = analytics_service.payment_breakdown(organization.id)
        assert [(m["paymentMethod"], m["percentage"]) for m in methods] == [
            ("cash", 50.0),
            ("Venmo", 25.0),
            ("Cash", 25.0),
        ]

    def test_size_distribution_labels_unsized(self, organization, tour_sales):
        sizes = analytics_service.size_distribution(organization.id)
        assert sizes == [
            {"size": "M", "quantity": 2, "percentage": 50.0},
            {"size": "One Size", "quantity": 1, "percentage": 25.0},
            {"size": "S", "quantity": 1, "percentage": 25.0},
        ]

    def test_products_by_date(self, organization, tour_sales):
        products = analytics_service.products_by_date(organization.id, date(2025, 10, 26))
        assert products == [
            {"productId": "p-shirt", "productName": "Tour Tee", "size": "M", "quantity": 2, "price": 20.0, "subtotal": 40.0},
            {"productId": "p-vinyl", "productName": "Vinyl LP", "size": "One Size", "quantity": 1, "price": 25.0, "subtotal": 25.0},
        ]

    def test_deleted_product_keeps_snapshot_name(self, organization, tour_sales):
        products_service.delete_product(organization.id, "p-shirt")
        assert analytics_service.quick_stats(organization.id)["topProduct"] == "Tour Tee"


class TestAnalyticsRoutes:

    def test_viewer_can_read(self, client, viewer_headers, tour_sales):
        response = client.get("/api/analytics/quick-stats?start=2025-10-26", headers=viewer_headers)
        assert response.status_code == 200
        assert response.get_json()["totalRevenue"] == 60.0

    def test_bad_bounds(self, client, viewer_headers):
        response = client.get("/api/analytics/daily-revenue?end=soon", headers=viewer_headers)
        assert response.status_code == 400

    def test_products_by_date_requires_date(self, client, viewer_headers):
        missing = client.get("/api/analytics/products-by-date", headers=viewer_headers)
        malformed = client.get("/api/analytics/products-by-date?date=10/26/2025", headers=viewer_headers)
        assert missing.status_code == 400
        assert malformed.get_json() == {"error": "date must be YYYY-MM-DD"}

    def test_outsider_forbidden(self, client, outsider_headers):
        response = client.get("/api/analytics/size-distribution", headers=outsider_headers)
        assert response.status_code == 403
