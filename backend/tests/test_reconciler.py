# Overview: Pytest coverage for payment-method normalization and Insights column layout/drift detection.

import pytest

from roaddog.sheets.reconciler import (
    DEFAULT_PAYMENT_METHODS,
    InsightsLayout,
    detect_schema_drift,
    normalize_payment_method,
    payment_methods_from_column,
    stored_methods,
)
from roaddog.sheets.schema import ColumnOverflowError


class TestNormalizePaymentMethod:

    @pytest.mark.parametrize("raw,expected", [
        ("cAsH", "Cash"),
        ("APPLE PAY", "Apple Pay"),
        ("  apple   PAY ", "Apple Pay"),
        ("venmo", "Venmo"),
        ("", ""),
        (None, ""),
    ])
    def test_title_case_single_spaced(self, raw, expected):
        assert normalize_payment_method(raw) == expected

    @pytest.mark.parametrize("raw", ["cAsH", " zelle  QUICK pay", "Card", "x"])
    def test_idempotent(self, raw):
        once = normalize_payment_method(raw)
        assert normalize_payment_method(once) == once


class TestPaymentMethodsFromColumn:

    def test_distinct_sorted(self):
        cells = [["cash"], ["Venmo"], ["CASH"], [], ["card"], ["venmo "]]
        assert payment_methods_from_column(cells) == ["Card", "Cash", "Venmo"]

    def test_defaults_when_no_methods(self):
        assert payment_methods_from_column([]) == sorted(DEFAULT_PAYMENT_METHODS)
        assert payment_methods_from_column([[""], []]) == sorted(DEFAULT_PAYMENT_METHODS)


class TestInsightsLayout:

    def test_trailing_columns_follow_methods(self):
        layout = InsightsLayout.for_methods(["Card", "Cash", "Venmo"])
        assert layout.headers() == [
            "Date", "Number of Sales", "Actual Revenue", "Tips",
            "Card Revenue", "Cash Revenue", "Venmo Revenue",
            "Top Item", "Top Size",
        ]
        assert layout.method_index("Card") == 4
        assert layout.top_item_index == 7
        assert layout.last_letter == "I"
        assert layout.data_range() == "Insights!A12:I"
        assert layout.top_items_range() == "Insights!H12:I12"

    def test_adding_a_method_moves_top_item(self):
        two = InsightsLayout.for_methods(["Cash", "Venmo"])
        three = InsightsLayout.for_methods(["Card", "Cash", "Venmo"])
        assert three.top_item_index == two.top_item_index + 1

    def test_twenty_methods_fit(self):
        layout = InsightsLayout.for_methods([f"Method {i:02d}" for i in range(20)])
        assert layout.last_letter == "Z"

    def test_more_methods_than_columns_is_an_error(self):
        with pytest.raises(ColumnOverflowError):
            InsightsLayout.for_methods([f"Method {i:02d}" for i in range(21)])

    def test_rows_carry_headers_and_formulas(self):
        rows = InsightsLayout.for_methods(["Cash"]).rows(formula_rows=2)
        assert rows[4] == ["Total Actual Revenue", "=SUM(Sales!E2:E)"]
        assert rows[10] == InsightsLayout.for_methods(["Cash"]).headers()
        assert rows[11][0].startswith("=QUERY(Sales!A2:L")
        assert rows[12][0] == ""
        assert 'Sales!$G:$G,"Cash"' in rows[11][4]
        assert len(rows) == 13


class TestSchemaDrift:

    HEADER = ["Date", "Number of Sales", "Actual Revenue", "Tips", "Cash Revenue", "Venmo Revenue", "Top Item", "Top Size"]

    def test_stored_methods_skip_fixed_revenue_column(self):
        assert stored_methods(self.HEADER) == ["Cash", "Venmo"]

    def test_new_method_is_drift(self):
        assert detect_schema_drift(self.HEADER, ["Cash", "Card", "Venmo"]) is True

    def test_same_methods_same_order_is_not_drift(self):
        assert detect_schema_drift(self.HEADER, ["Cash", "Venmo"]) is False

    def test_reordered_methods_are_drift(self):
        assert detect_schema_drift(self.HEADER, ["Venmo", "Cash"]) is True

    def test_missing_header_row(self):
        assert detect_schema_drift([], ["Cash"]) is True
