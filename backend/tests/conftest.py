"""
Pytest fixtures for Road Dog backend tests.

Provides the app with an in-memory database, per-test table wipe, users
with each organization role, bearer-token headers, and an in-memory fake
of the Google Sheets / Drive API surface used by roaddog.sheets.client.
"""

import json
import re

import pytest
from googleapiclient.errors import HttpError

from roaddog import create_app
from roaddog.extensions import db
from roaddog.models import OrganizationMember, User
from roaddog.models.tenancy import ROLE_ADMIN, ROLE_MEMBER, ROLE_VIEWER
from roaddog.records import ProductRecord, SaleRecord
from roaddog.services import organization_service, products_service, sales_service, session_service
from roaddog.sheets.client import SheetsClient


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RESEND_API_KEY': 'test-resend-key',
        'RESEND_API_URL': 'https://resend.test/emails',
        'NOTIFICATION_RECIPIENT': 'team@roaddog.local',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(email: str, name: str) -> User:
    user = User(email=email, name=name, is_active=True)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def owner(db_session):
    return _make_user("owner@roaddog.local", "Owner")


@pytest.fixture(scope='function')
def organization(db_session, owner):
    """Organization owned by `owner`."""
    return organization_service.create_organization(owner.id, "The Tour Band")


def _add_member(organization, email: str, role: str) -> User:
    user = _make_user(email, role.title())
    db.session.add(OrganizationMember(
        organization_id=organization.id,
        user_id=user.id,
        role=role,
    ))
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def admin(organization):
    return _add_member(organization, "admin@roaddog.local", ROLE_ADMIN)


@pytest.fixture(scope='function')
def member(organization):
    return _add_member(organization, "member@roaddog.local", ROLE_MEMBER)


@pytest.fixture(scope='function')
def viewer(organization):
    return _add_member(organization, "viewer@roaddog.local", ROLE_VIEWER)


@pytest.fixture(scope='function')
def outsider(db_session):
    """A user with no membership anywhere."""
    return _make_user("outsider@elsewhere.local", "Outsider")


def token_for(user: User) -> str:
    _, token = session_service.create_session(user.id)
    return token


def auth_headers(token: str, organization_id: int | None = None) -> dict:
    """Helper to create Authorization (and organization) headers."""
    headers = {'Authorization': f'Bearer {token}'}
    if organization_id is not None:
        headers['X-Organization-Id'] = str(organization_id)
    return headers


@pytest.fixture(scope='function')
def owner_headers(owner, organization):
    return auth_headers(token_for(owner), organization.id)


@pytest.fixture(scope='function')
def admin_headers(admin, organization):
    return auth_headers(token_for(admin), organization.id)


@pytest.fixture(scope='function')
def member_headers(member, organization):
    return auth_headers(token_for(member), organization.id)


@pytest.fixture(scope='function')
def viewer_headers(viewer, organization):
    return auth_headers(token_for(viewer), organization.id)


@pytest.fixture(scope='function')
def outsider_headers(outsider, organization):
    return auth_headers(token_for(outsider), organization.id)


def sale_payload(sale_id: str, items: list, total: float, **extra) -> dict:
    """Camel-case sale body as the POS client sends it."""
    payload = {
        "id": sale_id,
        "timestamp": extra.pop("timestamp", "2025-10-26T20:15:00Z"),
        "items": items,
        "total": total,
        "paymentMethod": extra.pop("paymentMethod", "cash"),
    }
    payload.update(extra)
    return payload


def line_item(product_id: str, name: str, quantity: int, price: float, size: str | None = None) -> dict:
    item = {"productId": product_id, "productName": name, "quantity": quantity, "price": price}
    if size:
        item["size"] = size
    return item


@pytest.fixture(scope='function')
def tour_sales(organization):
    """
    Two products and three sales across two nights.

    s1  10/26 cash   Tour Tee M x2   40
    s2  10/26 Venmo  Vinyl LP x1     25 (5 off)
    s3  10/25 Cash   Tour Tee S x1   20 (+3 tip)
    """
    products_service.upsert_products(organization.id, [
        ProductRecord.from_payload({
            "id": "p-shirt", "name": "Tour Tee", "price": 20, "category": "Apparel",
            "sizes": ["S", "M"], "inventory": {"S": 5, "M": 5},
        }),
        ProductRecord.from_payload({
            "id": "p-vinyl", "name": "Vinyl LP", "price": 25, "category": "Music",
            "inventory": {"default": 4},
        }),
    ])
    sales = [
        sale_payload("s1", [line_item("p-shirt", "Tour Tee", 2, 20, "M")], 40,
                     timestamp="2025-10-26T20:00:00Z"),
        sale_payload("s2", [line_item("p-vinyl", "Vinyl LP", 1, 25)], 25,
                     timestamp="2025-10-26T21:00:00Z", paymentMethod="Venmo", discount=5),
        sale_payload("s3", [line_item("p-shirt", "Tour Tee", 1, 20, "S")], 20,
                     timestamp="2025-10-25T19:00:00Z", paymentMethod="Cash", tipAmount=3),
    ]
    sales_service.record_sales(organization.id, [SaleRecord.from_payload(s) for s in sales])
    return sales


# =============================================================================
# IN-MEMORY GOOGLE SHEETS / DRIVE
# =============================================================================

_CELL = re.compile(r"^([A-Z]*)(\d*)$")


class _Resp:
    def __init__(self, status: int, reason: str):
        self.status = status
        self.reason = reason


def _http_error(status: int, message: str) -> HttpError:
    content = json.dumps({"error": {"code": status, "message": message}}).encode("utf-8")
    return HttpError(_Resp(status, message), content)


class _FakeRequest:
    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


class FakeTab:
    def __init__(self, sheet_id: int, title: str, rows=None):
        self.sheet_id = sheet_id
        self.title = title
        self.rows = [list(r) for r in (rows or [])]
        self.bold_rows = []

    def properties(self) -> dict:
        return {"sheetId": self.sheet_id, "title": self.title}

    def set(self, row: int, col: int, value):
        while len(self.rows) <= row:
            self.rows.append([])
        cells = self.rows[row]
        while len(cells) <= col:
            cells.append("")
        cells[col] = value

    def last_used_row(self) -> int:
        """Zero-based index of the last row holding any value, -1 when empty."""
        for index in range(len(self.rows) - 1, -1, -1):
            if any(cell not in ("", None) for cell in self.rows[index]):
                return index
        return -1


class FakeSpreadsheet:
    def __init__(self, spreadsheet_id: str, title: str):
        self.spreadsheet_id = spreadsheet_id
        self.title = title
        self.tabs: dict[str, FakeTab] = {}
        self._next_sheet_id = 0

    def add_tab(self, title: str, rows=None) -> FakeTab:
        tab = FakeTab(self._next_sheet_id, title, rows)
        self._next_sheet_id += 1
        self.tabs[title] = tab
        return tab

    def tab_by_id(self, sheet_id: int) -> FakeTab:
        for tab in self.tabs.values():
            if tab.sheet_id == sheet_id:
                return tab
        raise _http_error(400, f"No grid with id: {sheet_id}")

    def values(self, title: str) -> list[list]:
        return self.tabs[title].rows


class FakeGoogle:
    """Shared state behind the fake Sheets and Drive services."""

    def __init__(self):
        self.spreadsheets: dict[str, FakeSpreadsheet] = {}
        self.calls: list[str] = []
        self.append_input_options: list[str] = []
        self._counter = 0

    def create(self, title: str) -> FakeSpreadsheet:
        self._counter += 1
        spreadsheet = FakeSpreadsheet(f"sheet-{self._counter}", title)
        self.spreadsheets[spreadsheet.spreadsheet_id] = spreadsheet
        return spreadsheet

    def get(self, spreadsheet_id: str) -> FakeSpreadsheet:
        spreadsheet = self.spreadsheets.get(spreadsheet_id)
        if spreadsheet is None:
            raise _http_error(404, "Requested entity was not found.")
        return spreadsheet

    # A1 ranges ------------------------------------------------------------

    def resolve(self, spreadsheet_id: str, range_: str):
        """-> (tab, row0, col0, row1 or None, col1) with zero-based, inclusive bounds."""
        spreadsheet = self.get(spreadsheet_id)
        if range_.startswith("'"):
            end = range_.index("'!", 1)
            title, cells = range_[1:end].replace("''", "'"), range_[end + 2:]
        else:
            title, _, cells = range_.partition("!")
        tab = spreadsheet.tabs.get(title)
        if tab is None:
            raise _http_error(400, f"Unable to parse range: {range_}")

        start, _, end = cells.partition(":")
        start_col, start_row = _CELL.match(start).groups()
        col0 = ord(start_col) - ord("A") if start_col else 0
        row0 = int(start_row) - 1 if start_row else 0
        if not end:
            return tab, row0, col0, row0, col0
        end_col, end_row = _CELL.match(end).groups()
        col1 = ord(end_col) - ord("A") if end_col else 25
        row1 = int(end_row) - 1 if end_row else None
        return tab, row0, col0, row1, col1

    def read(self, spreadsheet_id: str, range_: str) -> list[list]:
        tab, row0, col0, row1, col1 = self.resolve(spreadsheet_id, range_)
        last = len(tab.rows) - 1 if row1 is None else min(row1, len(tab.rows) - 1)
        result = []
        for index in range(row0, last + 1):
            cells = list(tab.rows[index][col0:col1 + 1])
            while cells and cells[-1] in ("", None):
                cells.pop()
            result.append(cells)
        while result and not result[-1]:
            result.pop()
        return result

    def write(self, spreadsheet_id: str, range_: str, values: list[list]) -> None:
        tab, row0, col0, _, _ = self.resolve(spreadsheet_id, range_)
        for i, row in enumerate(values):
            for j, value in enumerate(row):
                tab.set(row0 + i, col0 + j, value)

    def clear(self, spreadsheet_id: str, range_: str) -> None:
        tab, row0, col0, row1, col1 = self.resolve(spreadsheet_id, range_)
        last = len(tab.rows) - 1 if row1 is None else min(row1, len(tab.rows) - 1)
        for index in range(row0, last + 1):
            cells = tab.rows[index]
            for col in range(col0, min(col1 + 1, len(cells))):
                cells[col] = ""

    def append(self, spreadsheet_id: str, range_: str, values: list[list]) -> None:
        tab, row0, col0, _, _ = self.resolve(spreadsheet_id, range_)
        start = max(row0, tab.last_used_row() + 1)
        for i, row in enumerate(values):
            for j, value in enumerate(row):
                tab.set(start + i, col0 + j, value)


class _FakeValues:
    def __init__(self, google: FakeGoogle):
        self.google = google

    def get(self, spreadsheetId, range, valueRenderOption=None):
        def run():
            self.google.calls.append(f"values.get {range}")
            values = self.google.read(spreadsheetId, range)
            return {"range": range, "values": values} if values else {"range": range}
        return _FakeRequest(run)

    def batchGet(self, spreadsheetId, ranges):
        def run():
            self.google.calls.append("values.batchGet")
            value_ranges = []
            for range_ in ranges:
                values = self.google.read(spreadsheetId, range_)
                entry = {"range": range_}
                if values:
                    entry["values"] = values
                value_ranges.append(entry)
            return {"valueRanges": value_ranges}
        return _FakeRequest(run)

    def update(self, spreadsheetId, range, valueInputOption, body):
        def run():
            self.google.calls.append(f"values.update {range}")
            self.google.write(spreadsheetId, range, body["values"])
            return {"updatedRange": range}
        return _FakeRequest(run)

    def batchUpdate(self, spreadsheetId, body):
        def run():
            self.google.calls.append("values.batchUpdate")
            for entry in body["data"]:
                self.google.write(spreadsheetId, entry["range"], entry["values"])
            return {"totalUpdatedCells": sum(len(r) for e in body["data"] for r in e["values"])}
        return _FakeRequest(run)

    def append(self, spreadsheetId, range, valueInputOption, insertDataOption, body):
        def run():
            self.google.calls.append(f"values.append {range}")
            self.google.append_input_options.append(valueInputOption)
            self.google.append(spreadsheetId, range, body["values"])
            return {"updates": {"updatedRows": len(body["values"])}}
        return _FakeRequest(run)

    def clear(self, spreadsheetId, range, body):
        def run():
            self.google.calls.append(f"values.clear {range}")
            self.google.clear(spreadsheetId, range)
            return {"clearedRange": range}
        return _FakeRequest(run)

    def batchClear(self, spreadsheetId, body):
        def run():
            self.google.calls.append("values.batchClear")
            for range_ in body["ranges"]:
                self.google.clear(spreadsheetId, range_)
            return {"clearedRanges": body["ranges"]}
        return _FakeRequest(run)


class _FakeSpreadsheets:
    def __init__(self, google: FakeGoogle):
        self.google = google

    def values(self):
        return _FakeValues(self.google)

    def get(self, spreadsheetId, fields=None, includeGridData=False):
        def run():
            spreadsheet = self.google.get(spreadsheetId)
            sheets = []
            for tab in spreadsheet.tabs.values():
                sheet = {"properties": tab.properties()}
                if includeGridData:
                    sheet["data"] = [{"rowData": [list(r) for r in tab.rows]}]
                sheets.append(sheet)
            return {
                "spreadsheetId": spreadsheetId,
                "properties": {"title": spreadsheet.title},
                "sheets": sheets,
            }
        return _FakeRequest(run)

    def create(self, body, fields=None):
        def run():
            spreadsheet = self.google.create(body["properties"]["title"])
            for sheet in body.get("sheets", []):
                data = sheet.get("data") or [{}]
                spreadsheet.add_tab(sheet["properties"]["title"], data[0].get("rowData"))
            return {
                "spreadsheetId": spreadsheet.spreadsheet_id,
                "sheets": [{"properties": tab.properties()} for tab in spreadsheet.tabs.values()],
            }
        return _FakeRequest(run)

    def batchUpdate(self, spreadsheetId, body):
        def run():
            spreadsheet = self.google.get(spreadsheetId)
            replies = []
            for request in body["requests"]:
                if "addSheet" in request:
                    tab = spreadsheet.add_tab(request["addSheet"]["properties"]["title"])
                    replies.append({"addSheet": {"properties": tab.properties()}})
                elif "deleteSheet" in request:
                    tab = spreadsheet.tab_by_id(request["deleteSheet"]["sheetId"])
                    del spreadsheet.tabs[tab.title]
                    replies.append({})
                elif "repeatCell" in request:
                    grid = request["repeatCell"]["range"]
                    tab = spreadsheet.tab_by_id(grid["sheetId"])
                    tab.bold_rows.append((grid["startRowIndex"], grid["endRowIndex"]))
                    replies.append({})
                else:
                    replies.append({})
            return {"spreadsheetId": spreadsheetId, "replies": replies}
        return _FakeRequest(run)


class FakeSheetsService:
    def __init__(self, google: FakeGoogle):
        self.google = google

    def spreadsheets(self):
        return _FakeSpreadsheets(self.google)


class _FakeFiles:
    _NAME = re.compile(r"name='((?:[^'\\]|\\.)*)'")

    def __init__(self, google: FakeGoogle):
        self.google = google

    def list(self, q, orderBy=None, pageSize=None, fields=None):
        def run():
            name = self._NAME.search(q).group(1).replace("\\'", "'").replace("\\\\", "\\")
            matches = [
                {"id": s.spreadsheet_id, "name": s.title}
                for s in reversed(list(self.google.spreadsheets.values()))
                if s.title == name
            ]
            return {"files": matches[:pageSize] if pageSize else matches}
        return _FakeRequest(run)


class FakeDriveService:
    def __init__(self, google: FakeGoogle):
        self.google = google

    def files(self):
        return _FakeFiles(self.google)


@pytest.fixture(scope='function')
def google(monkeypatch):
    """Fake Google backend; SheetsClient.for_token() builds services against it."""
    fake = FakeGoogle()

    def fake_build(service_name, version, credentials=None, cache_discovery=True):
        assert credentials.token == "google-token"
        if service_name == "drive":
            return FakeDriveService(fake)
        return FakeSheetsService(fake)

    monkeypatch.setattr("roaddog.sheets.client.build", fake_build)
    return fake


@pytest.fixture(scope='function')
def spreadsheet(google):
    """An existing spreadsheet with empty Products and Sales tabs."""
    sheet = google.create("Road Dog - Sales & Inventory")
    sheet.add_tab("Products")
    sheet.add_tab("Sales")
    return sheet


@pytest.fixture(scope='function')
def sheets_client(google, spreadsheet):
    return SheetsClient(spreadsheet.spreadsheet_id, FakeSheetsService(google), FakeDriveService(google))


@pytest.fixture(scope='function')
def google_headers():
    return {'X-Google-Access-Token': 'google-token'}
