# Overview: Flask API routes for the Google Sheets storage path; parses input and returns JSON responses.

"""
Sheets API routes.

Every endpoint acts on the caller's own spreadsheet with the caller's own
Google access token (X-Google-Access-Token). Nothing is stored server-side.

Responses are {"success": true, ...payload} or {"error": ..., "details"?: ...}.
Backend failures (quota, malformed range, oversized cell, too many payment
columns) answer 500 with the triggering message in `details`.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_google_token, require_org_role
from ..models.tenancy import ROLE_ADMIN
from ..records import EmailSignupRecord, ProductRecord, RecordError, SaleRecord, normalize_pos_settings
from ..services import migration_service
from ..sheets.client import SheetsClient
from ..sheets.sync import EmailListNotFoundError, InsightsNotFoundError, SheetSync


sheets_bp = Blueprint("sheets", __name__, url_prefix="/api/sheets")


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _spreadsheet_id(data: dict, *aliases: str) -> str | None:
    for key in ("spreadsheetId",) + aliases:
        value = data.get(key)
        if value:
            return str(value)
    return None


def _sync(spreadsheet_id: str | None = None) -> SheetSync:
    return SheetSync(SheetsClient.for_token(g.google_access_token, spreadsheet_id))


def _missing_id(label: str = "Spreadsheet"):
    return jsonify({"error": f"{label} ID not provided"}), 400


def _json_error(exc: Exception, action: str):
    if isinstance(exc, RecordError):
        body = {"error": str(exc)}
        if exc.field:
            body["details"] = {"field": exc.field}
        return jsonify(body), 400
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": f"Failed to {action}", "details": str(exc)}), 500


# Spreadsheet lifecycle ------------------------------------------------------

@sheets_bp.post("/initialize")
@require_google_token
def initialize_route():
    try:
        result = _sync().initialize(current_app.config["SPREADSHEET_TITLE"])
        return jsonify({"success": True, **result}), 200
    except Exception as exc:
        return _json_error(exc, "initialize sheets")


@sheets_bp.get("/find")
@require_google_token
def find_route():
    title = request.args.get("name") or current_app.config["SPREADSHEET_TITLE"]
    try:
        spreadsheet_id = _sync().find(title)
    except Exception as exc:
        return _json_error(exc, "search for spreadsheet")
    if spreadsheet_id:
        return jsonify({"found": True, "spreadsheetId": spreadsheet_id}), 200
    return jsonify({"found": False}), 200


@sheets_bp.post("/get-sheet-name")
@require_google_token
def sheet_name_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        return jsonify({"success": True, "sheetName": _sync(spreadsheet_id).sheet_name()}), 200
    except Exception as exc:
        return _json_error(exc, "get sheet name")


@sheets_bp.post("/backup")
@require_google_token
def backup_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        result = _sync(spreadsheet_id).backup()
        return jsonify({"success": True, **result}), 200
    except Exception as exc:
        return _json_error(exc, "create backup")


# Products and sales ---------------------------------------------------------

@sheets_bp.post("/sync-products")
@require_google_token
def sync_products_route():
    data = _body()
    spreadsheet_id = _spreadsheet_id(data, "productsSheetId")
    if not spreadsheet_id:
        return _missing_id("Products sheet")
    try:
        products = [ProductRecord.from_payload(p) for p in data.get("products") or []]
        count = _sync(spreadsheet_id).sync_products(products)
        return jsonify({"success": True, "message": f"Synced {count} products to Google Sheets"}), 200
    except Exception as exc:
        return _json_error(exc, "sync products")


@sheets_bp.post("/load-products")
@require_google_token
def load_products_route():
    spreadsheet_id = _spreadsheet_id(_body(), "productsSheetId")
    if not spreadsheet_id:
        return _missing_id("Products sheet")
    try:
        products = _sync(spreadsheet_id).load_products()
        return jsonify({"success": True, "products": [p.to_payload() for p in products]}), 200
    except Exception as exc:
        return _json_error(exc, "load products from Google Sheets")


@sheets_bp.post("/sync-sales")
@require_google_token
def sync_sales_route():
    data = _body()
    spreadsheet_id = _spreadsheet_id(data, "salesSheetId")
    if not spreadsheet_id:
        return _missing_id("Sales sheet")
    try:
        sales = [SaleRecord.from_payload(s) for s in data.get("sales") or []]
        count = _sync(spreadsheet_id).sync_sales(sales)
        return jsonify({
            "success": True,
            "message": f"Synced {count} sales to Google Sheets",
            "salesSynced": count,
        }), 200
    except Exception as exc:
        return _json_error(exc, "sync sales")


@sheets_bp.post("/load-sales")
@require_google_token
def load_sales_route():
    spreadsheet_id = _spreadsheet_id(_body(), "salesSheetId")
    if not spreadsheet_id:
        return _missing_id("Sales sheet")
    try:
        sales = _sync(spreadsheet_id).load_sales()
        return jsonify({"success": True, "sales": [s.to_payload() for s in sales]}), 200
    except Exception as exc:
        return _json_error(exc, "load sales from Google Sheets")


@sheets_bp.post("/get-daily-products")
@require_google_token
def daily_products_route():
    data = _body()
    spreadsheet_id = _spreadsheet_id(data)
    date = data.get("date")
    if not spreadsheet_id or not date:
        return jsonify({"error": "Spreadsheet ID and date not provided"}), 400
    try:
        breakdown = _sync(spreadsheet_id).daily_products(str(date))
        return jsonify({"success": True, "date": date, "productBreakdown": breakdown}), 200
    except Exception as exc:
        return _json_error(exc, "fetch daily product breakdown")


@sheets_bp.post("/migrate-sales")
@require_google_token
def migrate_sales_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        result = _sync(spreadsheet_id).migrate_sales_sheet()
    except Exception as exc:
        return _json_error(exc, "migrate sales sheet")
    return jsonify(result), 200


# Settings -------------------------------------------------------------------

@sheets_bp.post("/settings/load")
@require_google_token
def load_settings_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        settings = _sync(spreadsheet_id).load_settings()
        is_default = settings.pop("isDefault")
        return jsonify({"success": True, "settings": settings, "isDefault": is_default}), 200
    except Exception as exc:
        return _json_error(exc, "load POS settings")


@sheets_bp.post("/settings/save")
@require_google_token
def save_settings_route():
    data = _body()
    spreadsheet_id = _spreadsheet_id(data)
    if not spreadsheet_id:
        return _missing_id()
    payload = data.get("settings") if isinstance(data.get("settings"), dict) else data
    if not isinstance(payload.get("paymentSettings"), list):
        return jsonify({"error": "Invalid payment settings"}), 400
    try:
        settings = normalize_pos_settings(payload)
        _sync(spreadsheet_id).save_settings(settings)
        return jsonify({"success": True, "message": "Settings saved successfully"}), 200
    except Exception as exc:
        return _json_error(exc, "save POS settings")


# Email list -----------------------------------------------------------------

@sheets_bp.post("/add-email-list")
@require_google_token
def add_email_list_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        result = _sync(spreadsheet_id).ensure_email_list()
    except Exception as exc:
        return _json_error(exc, "add Email List sheet")
    message = "Email List sheet already exists" if result["alreadyExists"] else "Email List sheet created"
    return jsonify({"success": True, "message": message, **result}), 200


@sheets_bp.post("/email-signup")
@require_google_token
def email_signup_route():
    data = _body()
    spreadsheet_id = _spreadsheet_id(data)
    if not spreadsheet_id:
        return _missing_id()
    if not data.get("email"):
        return jsonify({"error": "Email is required"}), 400
    try:
        signup = EmailSignupRecord.from_payload(data)
        _sync(spreadsheet_id).append_email_signup(signup)
    except EmailListNotFoundError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception as exc:
        return _json_error(exc, "save email signup")
    return jsonify({
        "success": True,
        "message": "Email saved successfully",
        "timestamp": signup.to_payload()["timestamp"],
    }), 200


# Insights -------------------------------------------------------------------

@sheets_bp.post("/check-insights")
@require_google_token
def check_insights_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        return jsonify({"success": True, **_sync(spreadsheet_id).check_insights()}), 200
    except Exception as exc:
        return _json_error(exc, "check Insights sheet")


@sheets_bp.post("/create-insights")
@require_google_token
def create_insights_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        result = _sync(spreadsheet_id).create_insights()
    except Exception as exc:
        return _json_error(exc, "create Insights sheet")
    message = "Insights sheet already exists" if result["alreadyExists"] else "Insights sheet created"
    return jsonify({"success": True, "message": message, **result}), 200


@sheets_bp.post("/delete-insights")
@require_google_token
def delete_insights_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        result = _sync(spreadsheet_id).delete_insights()
    except Exception as exc:
        return _json_error(exc, "delete Insights sheet")
    message = "Insights sheet does not exist" if result["alreadyDeleted"] else "Insights sheet deleted"
    return jsonify({"success": True, "message": message, **result}), 200


@sheets_bp.post("/get-insights")
@require_google_token
def get_insights_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        insights = _sync(spreadsheet_id).get_insights()
    except InsightsNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception as exc:
        return _json_error(exc, "fetch insights")
    return jsonify({"success": True, **insights}), 200


# Database migration ---------------------------------------------------------

@sheets_bp.post("/migrate-to-database")
@require_auth
@require_org_role(ROLE_ADMIN)
@require_google_token
def migrate_to_database_route():
    spreadsheet_id = _spreadsheet_id(_body())
    if not spreadsheet_id:
        return _missing_id()
    try:
        results = migration_service.migrate_spreadsheet(
            _sync(spreadsheet_id),
            g.org_context.organization_id,
            g.current_user.id,
        )
    except Exception as exc:
        return _json_error(exc, "migrate data")
    return jsonify({"success": True, "message": "Migration completed", "results": results}), 200
