# Overview: Flask API routes for the POS counter; parses input and returns JSON responses.

# backend/bakerypos/routes/pos.py
"""POS API routes: sellable items, bills, daily summary"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BakeryError
from ..services import billing_service, catalog_service, reporting_service
from ..decorators import require_actor
from ..time_utils import business_today
from ..validation import require_date


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


@pos_bp.get("/items")
@require_actor
def pos_items_route():
    """Active products with today's stock and current price, plus sellable stock items."""
    try:
        return jsonify(catalog_service.pos_items()), 200
    except Exception:
        current_app.logger.exception("Failed to load POS items")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/bills")
@require_actor
def create_bill_route():
    """
    Create a completed bill.

    Body: {"items": [{"type": "product"|"stock_item", "id": 1, "quantity": 2}],
           "discount_percent": 0, "payment_method": "cash",
           "amount_paid_cents": 13000, "notes": "..."}

    Prices are resolved server-side from one hour snapshot.
    """
    try:
        data = request.get_json(silent=True) or {}
        lines = billing_service.build_cart_lines(data.get("items"))
        bill = billing_service.create_bill(
            lines,
            discount_percent=data.get("discount_percent", 0),
            payment_method=data.get("payment_method") or "cash",
            amount_paid_cents=data.get("amount_paid_cents"),
            cashier_id=g.current_user.id,
            notes=data.get("notes"),
        )
        return jsonify({"bill": bill.to_dict(include_items=True)}), 201

    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create bill")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.get("/bills")
@require_actor
def list_bills_route():
    try:
        today = business_today()
        result = billing_service.list_bills(
            require_date(request.args.get("from"), field="from", default=today),
            require_date(request.args.get("to"), field="to", default=today),
            page=request.args.get("page", 1, type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@pos_bp.get("/bills/<int:bill_id>")
@require_actor
def get_bill_route(bill_id: int):
    try:
        bill = billing_service.get_bill(bill_id)
        return jsonify({"bill": bill.to_dict(include_items=True)}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@pos_bp.post("/bills/<int:bill_id>/cancel")
@require_actor
def cancel_bill_route(bill_id: int):
    """
    Cancel a completed bill.

    Body (optional): {"restore_inventory": true}
    """
    try:
        data = request.get_json(silent=True) or {}
        bill = billing_service.cancel_bill(
            bill_id, restore_inventory=bool(data.get("restore_inventory", False))
        )
        current_app.logger.info("Bill %s cancelled by user %s", bill.bill_number, g.current_user.id)
        return jsonify({"bill": bill.to_dict(include_items=True)}), 200

    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel bill")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.get("/bills/<int:bill_id>/receipt")
@require_actor
def receipt_route(bill_id: int):
    try:
        return jsonify(billing_service.receipt_data(bill_id)), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@pos_bp.get("/daily-summary")
@require_actor
def daily_summary_route():
    try:
        day = require_date(request.args.get("date"), default=business_today())
        return jsonify(reporting_service.daily_summary(day)), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
