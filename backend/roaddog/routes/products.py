# Overview: Flask API routes for the organization product catalog; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_org_role
from ..models.tenancy import ROLE_ADMIN, ROLE_VIEWER
from ..records import ProductRecord, RecordError
from ..services import products_service
from ..services.products_service import ProductError, ProductNotFoundError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _json_error(exc: Exception):
    if isinstance(exc, RecordError):
        return jsonify({"error": str(exc), "details": {"field": exc.field}}), 400
    if isinstance(exc, ProductNotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ProductError):
        body = {"error": str(exc)}
        if exc.details:
            body["details"] = exc.details
        return jsonify(body), 400
    return jsonify({"error": "Internal server error"}), 500


@products_bp.get("")
@require_auth
@require_org_role(ROLE_VIEWER)
def list_products_route():
    products = products_service.list_products(g.org_context.organization_id)
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.post("")
@require_auth
@require_org_role(ROLE_ADMIN)
def upsert_products_route():
    """
    Save a batch of products (insert or overwrite by id).

    Body: {"products": [ {id, name, price, ...}, ... ]}
    """
    data = request.get_json(silent=True) or {}
    payload = data.get("products")
    if not isinstance(payload, list):
        return jsonify({"error": "products must be a list"}), 400
    try:
        records = [ProductRecord.from_payload(p) for p in payload]
        saved = products_service.upsert_products(g.org_context.organization_id, records)
        return jsonify({"success": True, "products": [p.to_dict() for p in saved]}), 200
    except (RecordError, ProductError) as exc:
        return _json_error(exc)
    except Exception as exc:
        current_app.logger.exception("Failed to save products")
        return _json_error(exc)


@products_bp.delete("/<product_id>")
@require_auth
@require_org_role(ROLE_ADMIN)
def delete_product_route(product_id: str):
    try:
        products_service.delete_product(g.org_context.organization_id, product_id)
        return jsonify({"success": True}), 200
    except ProductError as exc:
        return _json_error(exc)


@products_bp.post("/<product_id>/restock")
@require_auth
@require_org_role(ROLE_ADMIN)
def restock_route(product_id: str):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.restock(
            g.org_context.organization_id,
            product_id,
            data.get("quantity"),
            size=data.get("size") or None,
        )
        return jsonify({"success": True, "product": product.to_dict()}), 200
    except ProductError as exc:
        return _json_error(exc)
    except Exception as exc:
        current_app.logger.exception("Failed to restock product")
        return _json_error(exc)
