# Overview: Flask API routes for the shop profile shown on receipts.

from flask import Blueprint, request, jsonify, current_app

from ..errors import BakeryError
from ..services import company_service
from ..decorators import require_actor


company_bp = Blueprint("company", __name__, url_prefix="/api/company")


# No actor required: receipts and the login screen show the shop name
@company_bp.get("/")
def get_company_route():
    try:
        return jsonify({"company": company_service.get_settings().to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@company_bp.patch("/")
@require_actor
def update_company_route():
    try:
        company = company_service.update_settings(request.get_json(silent=True) or {})
        return jsonify({"company": company.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update company settings")
        return jsonify({"error": "Internal server error"}), 500
