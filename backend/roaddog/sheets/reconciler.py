# Overview: Payment-method discovery and Insights column layout/drift detection.

"""
Payment-method & Insights column reconciliation.

The set of payment methods is open-ended (custom payment types), so the
Insights tab gets one "<Method> Revenue" column per method actually seen in
the Sales tab. Methods are Title-Cased and sorted; that sorted order is the
physical column order starting at column E. Top Item / Top Size follow the
last method column, so their letters move whenever the method set changes.

A tab built for an older method set is "drifted": its header labels no
longer match the freshly computed list, and the caller must delete and
recreate the tab before trusting any dynamic-column read.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .schema import (
    INSIGHTS_DATA_ROW,
    INSIGHTS_HEADER_ROW,
    INSIGHTS_LEADING_HEADERS,
    INSIGHTS_METHOD_SUFFIX,
    INSIGHTS_TITLE,
    INSIGHTS_TRAILING_HEADERS,
    MAX_COLUMNS,
    SALES,
    ColumnOverflowError,
    build_range,
    column_letter,
)


DEFAULT_PAYMENT_METHODS = ("Cash", "Venmo", "Card", "Other")

# Formula rows pre-filled under the QUERY spill (one per distinct sale date)
INSIGHTS_FORMULA_ROWS = 366


def normalize_payment_method(raw: str | None) -> str:
    """'cAsH' -> 'Cash', '  apple   PAY ' -> 'Apple Pay'."""
    return " ".join(token.capitalize() for token in (raw or "").split())


def payment_methods_from_column(cells: Iterable[Sequence[str]]) -> list[str]:
    """
    Distinct normalized methods from a Payment Method column read, sorted.

    `cells` is the raw values payload (one single-cell list per row).
    Falls back to DEFAULT_PAYMENT_METHODS when no sale carries a method.
    """
    methods = set()
    for row in cells:
        if row and row[0] is not None:
            normalized = normalize_payment_method(str(row[0]))
            if normalized:
                methods.add(normalized)
    if not methods:
        methods = set(DEFAULT_PAYMENT_METHODS)
    return sorted(methods)


@dataclass(frozen=True)
class InsightsLayout:
    methods: tuple[str, ...]

    def __post_init__(self):
        if self.top_size_index >= MAX_COLUMNS:
            raise ColumnOverflowError(
                f"{len(self.methods)} payment methods do not fit in the Insights tab "
                f"(columns A-Z); at most {MAX_COLUMNS - len(INSIGHTS_LEADING_HEADERS) - 2} are supported"
            )

    @classmethod
    def for_methods(cls, methods: Iterable[str]) -> "InsightsLayout":
        return cls(tuple(methods))

    @property
    def first_method_index(self) -> int:
        return len(INSIGHTS_LEADING_HEADERS)

    def method_index(self, method: str) -> int:
        return self.first_method_index + self.methods.index(method)

    @property
    def top_item_index(self) -> int:
        return self.first_method_index + len(self.methods)

    @property
    def top_size_index(self) -> int:
        return self.top_item_index + 1

    @property
    def last_letter(self) -> str:
        return column_letter(self.top_size_index)

    def headers(self) -> list[str]:
        return (
            list(INSIGHTS_LEADING_HEADERS)
            + [f"{method}{INSIGHTS_METHOD_SUFFIX}" for method in self.methods]
            + list(INSIGHTS_TRAILING_HEADERS)
        )

    def data_range(self) -> str:
        return build_range(INSIGHTS_TITLE, f"A{INSIGHTS_DATA_ROW}", self.last_letter)

    def top_items_range(self) -> str:
        row = INSIGHTS_DATA_ROW
        return build_range(
            INSIGHTS_TITLE,
            f"{column_letter(self.top_item_index)}{row}",
            f"{column_letter(self.top_size_index)}{row}",
        )

    def rows(self, formula_rows: int = INSIGHTS_FORMULA_ROWS) -> list[list[str]]:
        """Full tab contents from A1, formulas entered as USER_ENTERED."""
        actual = SALES.letter("actual_amount")
        date = SALES.letter("date")
        method = SALES.letter("payment_method")
        tips = SALES.letter("tips")
        names = SALES.letter("product_names")
        sizes = SALES.letter("sizes")

        query = (
            f'=QUERY(Sales!A2:{SALES.last_letter},"SELECT {date}, COUNT(A), SUM({actual}), SUM({tips}) '
            f"WHERE A IS NOT NULL GROUP BY {date} ORDER BY {date} DESC "
            f"LABEL COUNT(A) '', SUM({actual}) '', SUM({tips}) ''\",0)"
        )
        values: list[list[str]] = [
            ["INSIGHTS"],
            [],
            ["QUICK STATS"],
            ["Metric", "Value"],
            ["Total Actual Revenue", f"=SUM(Sales!{actual}2:{actual})"],
            ["Number of Sales", "=COUNTA(Sales!A2:A)"],
            ["Average Sale", "=IF(B6>0,B5/B6,0)"],
            [],
            [],
            ["ACTUAL REVENUE BY DATE"],
            self.headers(),
        ]
        for offset in range(formula_rows):
            r = INSIGHTS_DATA_ROW + offset
            row = [query if offset == 0 else "", "", "", ""]
            for name in self.methods:
                quoted = name.replace('"', '""')
                row.append(
                    f'=IF($A{r}="","",SUMIFS(Sales!${actual}:${actual},'
                    f'Sales!${date}:${date},$A{r},Sales!${method}:${method},"{quoted}"))'
                )
            row.append(f'=IF($A{r}="","",IFERROR(INDEX(Sales!${names}:${names},MATCH($A{r},Sales!${date}:${date},0)),""))')
            row.append(f'=IF($A{r}="","",IFERROR(INDEX(Sales!${sizes}:${sizes},MATCH($A{r},Sales!${date}:${date},0)),""))')
            values.append(row)
        return values


def header_row_range() -> str:
    return build_range(
        INSIGHTS_TITLE,
        f"A{INSIGHTS_HEADER_ROW}",
        f"{column_letter(MAX_COLUMNS - 1)}{INSIGHTS_HEADER_ROW}",
    )


def stored_methods(header_row: Sequence[str]) -> list[str]:
    """
    Payment methods encoded in an existing Insights header row.

    Only columns from E onward are considered; "Actual Revenue" in column C
    also ends with " Revenue" and is not a method.
    """
    start = len(INSIGHTS_LEADING_HEADERS)
    methods = []
    for label in header_row[start:]:
        label = str(label or "")
        if label.endswith(INSIGHTS_METHOD_SUFFIX):
            methods.append(label[: -len(INSIGHTS_METHOD_SUFFIX)])
    return methods


def detect_schema_drift(header_row: Sequence[str], methods: Sequence[str]) -> bool:
    """True when the tab's method columns differ from `methods` in length or any position."""
    return stored_methods(header_row) != list(methods)
