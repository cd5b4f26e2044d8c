# Overview: Flask API routes for suppliers and the supplier ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BakeryError
from ..services import catalog_service, supplier_service
from ..decorators import require_actor
from ..time_utils import business_today
from ..validation import require_date


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("/")
@require_actor
def list_suppliers_route():
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"
    return jsonify({"items": supplier_service.list_suppliers_with_balances(include_inactive)}), 200


@suppliers_bp.post("/")
@require_actor
def create_supplier_route():
    try:
        supplier = catalog_service.create_supplier(request.get_json(silent=True) or {})
        return jsonify({"supplier": supplier.to_dict()}), 201
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.get("/<int:supplier_id>")
@require_actor
def get_supplier_route(supplier_id: int):
    try:
        return jsonify({"supplier": supplier_service.supplier_summary(supplier_id)}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@suppliers_bp.patch("/<int:supplier_id>")
@require_actor
def update_supplier_route(supplier_id: int):
    try:
        supplier = catalog_service.update_supplier(supplier_id, request.get_json(silent=True) or {})
        return jsonify({"supplier": supplier.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@suppliers_bp.delete("/<int:supplier_id>")
@require_actor
def deactivate_supplier_route(supplier_id: int):
    try:
        supplier = catalog_service.deactivate_supplier(supplier_id)
        return jsonify({"supplier": supplier.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@suppliers_bp.get("/<int:supplier_id>/outstanding")
@require_actor
def outstanding_route(supplier_id: int):
    try:
        return jsonify({
            "supplier_id": supplier_id,
            "outstanding_cents": supplier_service.outstanding_cents(supplier_id),
        }), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@suppliers_bp.post("/<int:supplier_id>/payments")
@require_actor
def add_payment_route(supplier_id: int):
    """
    Body: {"amount_cents": -100000 | 40000, "payment_date": "YYYY-MM-DD",
           "payment_method": "cash", "reference": "..."}

    Negative amounts book a purchase, positive amounts a payment.
    """
    try:
        data = request.get_json(silent=True) or {}
        entry = supplier_service.add_supplier_payment(
            supplier_id,
            data.get("amount_cents"),
            payment_date=require_date(data.get("payment_date"), field="payment_date"),
            method=data.get("payment_method") or "cash",
            reference=data.get("reference"),
            created_by=g.current_user.id,
        )
        return jsonify({"payment": entry.to_dict()}), 201

    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record supplier payment")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.get("/payments")
@require_actor
def list_payments_route():
    try:
        today = business_today()
        entries = supplier_service.list_payments(
            require_date(request.args.get("from"), field="from", default=today.replace(day=1)),
            require_date(request.args.get("to"), field="to", default=today),
        )
        return jsonify({"items": [e.to_dict() for e in entries]}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
