# Overview: Flask API routes for brands and products; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import BakeryError
from ..services import catalog_service, inventory_service
from ..decorators import require_actor
from ..time_utils import business_today


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.get("/brands")
@require_actor
def list_brands_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    brands = catalog_service.list_brands(include_inactive=include_inactive)
    return jsonify({"items": [b.to_dict() for b in brands]}), 200


@catalog_bp.post("/brands")
@require_actor
def create_brand_route():
    try:
        brand = catalog_service.create_brand(request.get_json(silent=True) or {})
        return jsonify({"brand": brand.to_dict()}), 201
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create brand")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.patch("/brands/<int:brand_id>")
@require_actor
def update_brand_route(brand_id: int):
    try:
        brand = catalog_service.update_brand(brand_id, request.get_json(silent=True) or {})
        return jsonify({"brand": brand.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@catalog_bp.delete("/brands/<int:brand_id>")
@require_actor
def deactivate_brand_route(brand_id: int):
    try:
        brand = catalog_service.deactivate_brand(brand_id)
        return jsonify({"brand": brand.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@catalog_bp.get("/products")
@require_actor
def list_products_route():
    """Products with today's remaining balance."""
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    products = catalog_service.list_products(
        include_inactive=include_inactive,
        brand_id=request.args.get("brand_id", type=int),
        search=request.args.get("search") or None,
    )
    today = business_today()
    items = []
    for p in products:
        data = p.to_dict()
        data["current_stock"] = str(inventory_service.get_balance(p.id, today))
        items.append(data)
    return jsonify({"items": items, "count": len(items)}), 200


@catalog_bp.get("/products/<int:product_id>")
@require_actor
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
        return jsonify({"product": product.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@catalog_bp.post("/products")
@require_actor
def create_product_route():
    try:
        product = catalog_service.create_product(request.get_json(silent=True) or {})
        return jsonify({"product": product.to_dict()}), 201
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.patch("/products/<int:product_id>")
@require_actor
def update_product_route(product_id: int):
    try:
        product = catalog_service.update_product(product_id, request.get_json(silent=True) or {})
        return jsonify({"product": product.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/products/<int:product_id>")
@require_actor
def deactivate_product_route(product_id: int):
    try:
        product = catalog_service.deactivate_product(product_id)
        return jsonify({"product": product.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
