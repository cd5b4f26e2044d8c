# Overview: Flask API routes for customer orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BakeryError
from ..services import billing_service, order_service
from ..decorators import require_actor
from ..validation import require_date


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("/")
@require_actor
def list_orders_route():
    try:
        result = order_service.list_orders(
            status=request.args.get("status") or None,
            from_date=require_date(request.args.get("from"), field="from"),
            to_date=require_date(request.args.get("to"), field="to"),
            customer=request.args.get("search") or None,
            page=request.args.get("page", 1, type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.get("/pending")
@require_actor
def pending_orders_route():
    limit = request.args.get("limit", 10, type=int)
    orders = order_service.pending_orders(limit=limit)
    return jsonify({
        "items": [o.to_dict() for o in orders],
        "pending_count": order_service.pending_count(),
    }), 200


@orders_bp.post("/")
@require_actor
def create_order_route():
    """
    Create a pending order.

    Body: {"customer_name": "...", "customer_phone": "...",
           "delivery_date": "YYYY-MM-DD", "advance_cents": 0, "notes": "...",
           "items": [{"type": "product", "id": 1, "quantity": 1, "notes": "..."}]}

    Item prices are resolved from the catalog at the time of ordering.
    """
    try:
        data = request.get_json(silent=True) or {}
        raw_items = data.get("items")
        lines = billing_service.build_cart_lines(raw_items)
        for line, raw in zip(lines, raw_items):
            if raw.get("notes"):
                line["notes"] = raw["notes"]

        order = order_service.create_order(
            data.get("customer_name"),
            lines,
            customer_phone=data.get("customer_phone"),
            order_date=require_date(data.get("order_date"), field="order_date"),
            delivery_date=require_date(data.get("delivery_date"), field="delivery_date"),
            advance_cents=data.get("advance_cents", 0),
            notes=data.get("notes"),
            created_by=g.current_user.id,
        )
        return jsonify({"order": order.to_dict(include_items=True)}), 201

    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_actor
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
        return jsonify({"order": order.to_dict(include_items=True)}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.post("/<int:order_id>/status")
@require_actor
def update_status_route(order_id: int):
    """
    Body: {"status": "pending|in_progress|ready|completed|cancelled"}

    Completing an order consumes inventory and writes its bill.
    """
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        order = order_service.update_order_status(order_id, status, actor_id=g.current_user.id)
        return jsonify({"order": order.to_dict(include_items=True)}), 200

    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/payments")
@require_actor
def add_payment_route(order_id: int):
    """Body: {"amount_cents": 25000}"""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.add_order_payment(order_id, data.get("amount_cents"))
        return jsonify({"order": order.to_dict()}), 200

    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add order payment")
        return jsonify({"error": "Internal server error"}), 500
