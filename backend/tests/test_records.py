# Overview: Pytest coverage for record validation: sale money invariant, signups and settings documents.

import pytest

from roaddog.records import (
    EmailSignupRecord,
    ProductRecord,
    RecordError,
    SaleRecord,
    default_pos_settings,
    normalize_pos_settings,
)


def _sale_payload(**overrides):
    payload = {
        "id": "s1",
        "timestamp": "2025-10-26T20:15:00Z",
        "items": [{"productId": "p1", "productName": "Hat", "quantity": 1, "price": 30}],
        "total": 30,
        "paymentMethod": "cash",
    }
    payload.update(overrides)
    return payload


class TestSaleInvariant:

    @pytest.mark.parametrize("overrides,actual,discount", [
        ({}, 30.0, 0.0),
        ({"actualAmount": 25}, 25.0, 5.0),
        ({"discount": 30}, 0.0, 30.0),
        ({"actualAmount": 20, "discount": 10}, 20.0, 10.0),
    ])
    def test_actual_equals_total_minus_discount(self, overrides, actual, discount):
        sale = SaleRecord.from_payload(_sale_payload(**overrides))
        assert sale.actual_amount == actual
        assert sale.discount == discount
        assert sale.actual_amount == round(sale.total - sale.discount, 2)
        assert sale.is_hookup == (sale.discount > 0)

    def test_inconsistent_amounts_are_rejected(self):
        with pytest.raises(RecordError) as exc:
            SaleRecord.from_payload(_sale_payload(actualAmount=20, discount=5))
        assert exc.value.field == "actualAmount"

    def test_actual_above_total_is_rejected(self):
        with pytest.raises(RecordError):
            SaleRecord.from_payload(_sale_payload(actualAmount=35))

    @pytest.mark.parametrize("overrides,field", [
        ({"id": ""}, "id"),
        ({"paymentMethod": None}, "paymentMethod"),
        ({"timestamp": "last tuesday"}, "timestamp"),
        ({"total": "abc"}, "total"),
        ({"tipAmount": -1}, "tipAmount"),
    ])
    def test_invalid_fields(self, overrides, field):
        with pytest.raises(RecordError) as exc:
            SaleRecord.from_payload(_sale_payload(**overrides))
        assert exc.value.field == field

    def test_line_item_quantity_must_be_positive(self):
        items = [{"productId": "p1", "productName": "Hat", "quantity": 0, "price": 30}]
        with pytest.raises(RecordError):
            SaleRecord.from_payload(_sale_payload(items=items))

    def test_payload_shape(self):
        payload = SaleRecord.from_payload(_sale_payload(actualAmount=25, tipAmount=2)).to_payload()
        assert payload["timestamp"] == "2025-10-26T20:15:00Z"
        assert payload["isHookup"] is True
        assert payload["tipAmount"] == 2.0


class TestProductRecord:

    def test_defaults(self):
        product = ProductRecord.from_payload({"id": "p1", "name": " Hat ", "price": "12.5"})
        assert product.name == "Hat"
        assert product.price == 12.5
        assert product.category == "Other"
        assert product.show_text_on_button is True

    def test_negative_inventory_is_clamped(self):
        product = ProductRecord.from_payload({"id": "p1", "name": "Hat", "price": 1, "inventory": {"default": -3}})
        assert product.inventory == {"default": 0}

    def test_name_required(self):
        with pytest.raises(RecordError):
            ProductRecord.from_payload({"id": "p1", "price": 1})


class TestEmailSignupRecord:

    def test_source_follows_sale_id(self):
        with_sale = EmailSignupRecord.from_payload({"email": "fan@example.com", "saleId": "s1"})
        manual = EmailSignupRecord.from_payload({"email": "fan@example.com"})
        assert with_sale.source == "post-checkout"
        assert manual.source == "manual-entry"
        assert manual.id.startswith("email-")

    @pytest.mark.parametrize("email", ["", "fan", "fan@", "fan@example", "a b@example.com"])
    def test_invalid_emails(self, email):
        with pytest.raises(RecordError):
            EmailSignupRecord.from_payload({"email": email})


class TestPosSettings:

    def test_empty_document_gets_defaults(self):
        assert normalize_pos_settings({}) == default_pos_settings()

    def test_currency_without_rate_uses_default_rate(self):
        settings = normalize_pos_settings({"currency": {"displayCurrency": "eur"}})
        assert settings["currency"] == {"displayCurrency": "EUR", "exchangeRate": 0.92}

    def test_unsupported_currency(self):
        with pytest.raises(RecordError) as exc:
            normalize_pos_settings({"currency": {"displayCurrency": "XYZ"}})
        assert exc.value.field == "currency"

    def test_negative_transaction_fee(self):
        with pytest.raises(RecordError):
            normalize_pos_settings({"paymentSettings": [{"paymentType": "credit", "transactionFee": -1}]})

    def test_email_signup_merges_known_keys_only(self):
        settings = normalize_pos_settings({"emailSignup": {"enabled": 1, "bogus": True}})
        assert settings["emailSignup"]["enabled"] is True
        assert "bogus" not in settings["emailSignup"]
