# Overview: Flask API routes for daily stock and stock items; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BakeryError
from ..services import catalog_service, inventory_service
from ..decorators import require_actor
from ..time_utils import business_today
from ..validation import require_date


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("/today")
@require_actor
def today_route():
    """Today's stock rows; ?available=true keeps only rows with a positive balance."""
    try:
        day = require_date(request.args.get("date"), default=business_today())
        only_available = request.args.get("available", "false").lower() == "true"
        rows = inventory_service.list_stock_for_date(day, only_available=only_available)
        return jsonify({"date": day.isoformat(), "items": [r.to_dict() for r in rows]}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@stock_bp.post("/")
@require_actor
def add_stock_route():
    """Body: {"product_id": 1, "quantity": 24, "stock_date": "YYYY-MM-DD", "notes": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        product_id = data.get("product_id")
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            return jsonify({"error": "product_id required"}), 400

        row = inventory_service.add_stock(
            product_id,
            data.get("quantity"),
            require_date(data.get("stock_date"), field="stock_date"),
            added_by=g.current_user.id,
            notes=data.get("notes"),
        )
        return jsonify({"stock": row.to_dict()}), 201

    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add stock")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.post("/<int:stock_id>/clear")
@require_actor
def clear_stock_route(stock_id: int):
    try:
        row = inventory_service.clear_stock_balance(stock_id)
        return jsonify({"stock": row.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to clear stock")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/history/<int:product_id>")
@require_actor
def history_route(product_id: int):
    try:
        limit = request.args.get("limit", 30, type=int)
        rows = inventory_service.product_stock_history(product_id, limit=limit)
        return jsonify({"items": [r.to_dict() for r in rows]}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@stock_bp.get("/report")
@require_actor
def report_route():
    try:
        today = business_today()
        from_date = require_date(request.args.get("from"), field="from", default=today.replace(day=1))
        to_date = require_date(request.args.get("to"), field="to", default=today)
        products = inventory_service.stock_report(from_date, to_date)
        return jsonify({
            "from_date": from_date.isoformat(),
            "to_date": to_date.isoformat(),
            "products": products,
        }), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@stock_bp.get("/items")
@require_actor
def list_items_route():
    sellable_only = request.args.get("sellable", "false").lower() == "true"
    items = catalog_service.list_stock_items(sellable_only=sellable_only)
    return jsonify({"items": [i.to_dict() for i in items]}), 200


@stock_bp.get("/items/low")
@require_actor
def low_stock_route():
    threshold = request.args.get("threshold", type=int)
    items = inventory_service.low_stock_items(threshold)
    return jsonify({"items": [i.to_dict() for i in items]}), 200


@stock_bp.post("/items")
@require_actor
def create_item_route():
    """
    Create a stock item.

    Body: item fields plus optional supplier purchase:
    {"name": "Cola 500ml", "unit_price_cents": 15000, "quantity": 24,
     "supplier_id": 1, "total_cents": 300000, "paid_cents": 100000, "note": "..."}
    """
    try:
        data = dict(request.get_json(silent=True) or {})
        supplier_id = data.pop("supplier_id", None)
        total_cents = data.pop("total_cents", None)
        paid_cents = data.pop("paid_cents", 0) or 0
        note = data.pop("note", None)

        item = catalog_service.create_stock_item(
            data,
            supplier_id=supplier_id,
            total_cents=total_cents,
            paid_cents=paid_cents,
            note=note,
            created_by=g.current_user.id,
        )
        return jsonify({"item": item.to_dict()}), 201

    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create stock item")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.patch("/items/<int:item_id>")
@require_actor
def update_item_route(item_id: int):
    try:
        item = catalog_service.update_stock_item(item_id, request.get_json(silent=True) or {})
        return jsonify({"item": item.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@stock_bp.post("/items/<int:item_id>/restock")
@require_actor
def restock_item_route(item_id: int):
    """Body: {"quantity": 12, "supplier_id": 1, "total_cents": 150000, "paid_cents": 0, "note": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        item = inventory_service.restock_stock_item(
            item_id,
            data.get("quantity"),
            supplier_id=data.get("supplier_id"),
            total_cents=data.get("total_cents"),
            paid_cents=data.get("paid_cents", 0) or 0,
            note=data.get("note"),
            created_by=g.current_user.id,
        )
        return jsonify({"item": item.to_dict()}), 200

    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restock stock item")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.delete("/items/<int:item_id>")
@require_actor
def deactivate_item_route(item_id: int):
    try:
        item = catalog_service.deactivate_stock_item(item_id)
        return jsonify({"item": item.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
