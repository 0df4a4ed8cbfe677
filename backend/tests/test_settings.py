# Overview: Pytest coverage for organization/user settings documents, display currency helpers and system endpoints.

import pytest

from roaddog.currency import UnsupportedCurrencyError, convert_to_usd, display_price, format_price, get_currency
from roaddog.services import settings_service
from roaddog.services.settings_service import SettingsNotFoundError, SettingsValidationError


class TestOrganizationSettings:

    def test_never_saved_returns_defaults(self, organization):
        settings = settings_service.load_organization_settings(organization.id)
        assert settings["isDefault"] is True
        assert settings["currency"] == {"displayCurrency": "USD", "exchangeRate": 1.0}
        assert [p["paymentType"] for p in settings["paymentSettings"]][:2] == ["cash", "venmo"]

    def test_save_is_wholesale(self, organization, admin):
        settings_service.save_organization_settings(organization.id, {"theme": "dark", "categories": ["Vinyl"]}, admin.id)
        settings_service.save_organization_settings(organization.id, {"categories": ["Shirts"]}, admin.id)

        loaded = settings_service.load_organization_settings(organization.id)
        assert loaded["isDefault"] is False
        assert loaded["categories"] == ["Shirts"]
        assert loaded["theme"] == "default"

    def test_unsupported_currency(self, organization):
        with pytest.raises(SettingsValidationError) as exc:
            settings_service.save_organization_settings(organization.id, {"currency": {"displayCurrency": "XYZ"}})
        assert exc.value.field == "currency"


class TestUserSettings:

    def test_absent_until_saved(self, owner):
        assert settings_service.load_user_settings(owner.id) is None
        settings_service.save_user_settings(owner.id, {"showTipJar": False})
        assert settings_service.load_user_settings(owner.id)["showTipJar"] is False

    def test_unknown_user(self, db_session):
        with pytest.raises(SettingsNotFoundError):
            settings_service.save_user_settings(424242, {})


class TestSettingsRoutes:

    def test_viewer_reads_defaults(self, client, viewer_headers):
        response = client.get("/api/settings/organization", headers=viewer_headers)
        data = response.get_json()
        assert response.status_code == 200
        assert data["isDefault"] is True
        assert "isDefault" not in data["settings"]

    def test_admin_saves(self, client, admin_headers):
        body = {"settings": {"currency": {"displayCurrency": "GBP"}}}
        response = client.put("/api/settings/organization", json=body, headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()["settings"]["currency"] == {"displayCurrency": "GBP", "exchangeRate": 0.79}

        reloaded = client.get("/api/settings/organization", headers=admin_headers).get_json()
        assert reloaded["isDefault"] is False

    def test_member_cannot_save(self, client, member_headers):
        response = client.put("/api/settings/organization", json={"theme": "dark"}, headers=member_headers)
        assert response.status_code == 403

    def test_bad_currency_is_400(self, client, admin_headers):
        body = {"currency": {"displayCurrency": "XYZ"}}
        response = client.put("/api/settings/organization", json=body, headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()["details"] == {"field": "currency"}

    def test_user_settings_round_trip(self, client, owner_headers):
        assert client.get("/api/settings/user", headers=owner_headers).get_json() == {"settings": None}
        client.put("/api/settings/user", json={"settings": {"theme": "dark"}}, headers=owner_headers)
        assert client.get("/api/settings/user", headers=owner_headers).get_json()["settings"]["theme"] == "dark"


class TestCurrency:

    def test_override_wins_over_conversion(self):
        assert display_price(20.0, "EUR", rate=0.9, overrides={"EUR": 19.0}) == 19.0
        assert display_price(20.0, "EUR", rate=0.9) == 18.0
        assert display_price(20.0, "eur") == 18.4

    def test_yen_has_no_decimals(self):
        assert display_price(10.0, "JPY") == 1490.0
        assert format_price(10.0, "JPY") == "¥1490"
        assert format_price(12.5) == "$12.50"

    def test_back_to_usd(self):
        assert convert_to_usd(18.4, 0.92) == 20.0
        with pytest.raises(ValueError):
            convert_to_usd(10.0, 0)

    def test_unsupported(self):
        with pytest.raises(UnsupportedCurrencyError):
            get_currency("XYZ")
        assert get_currency(None).code == "USD"


class TestSystemRoutes:

    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"

    def test_currencies(self, client):
        data = client.get("/api/currencies").get_json()
        codes = [c["code"] for c in data["currencies"]]
        assert data["baseCurrency"] == "USD"
        assert codes == ["USD", "CAD", "EUR", "GBP", "MXN", "AUD", "JPY"]

    def test_version(self, client):
        assert client.get("/version").get_json()["api_version"] == "1.0.0"
