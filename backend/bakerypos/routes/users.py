# Overview: Flask API routes for staff users; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BakeryError
from ..services import user_service
from ..decorators import require_actor


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/")
@require_actor
def list_users_route():
    try:
        users = user_service.list_users(request.args.get("status"))
        return jsonify({"items": [u.to_dict() for u in users]}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.get("/<int:user_id>")
@require_actor
def get_user_route(user_id: int):
    try:
        return jsonify({"user": user_service.get_user(user_id).to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.post("/")
@require_actor
def create_user_route():
    try:
        user = user_service.create_user(request.get_json(silent=True) or {})
        return jsonify({"user": user.to_dict()}), 201
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.patch("/<int:user_id>")
@require_actor
def update_user_route(user_id: int):
    try:
        user = user_service.update_user(user_id, request.get_json(silent=True) or {})
        return jsonify({"user": user.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.delete("/<int:user_id>")
@require_actor
def deactivate_user_route(user_id: int):
    try:
        user = user_service.deactivate_user(user_id, actor_id=g.current_user.id)
        return jsonify({"user": user.to_dict()}), 200
    except BakeryError as e:
        return jsonify(e.to_dict()), e.status_code
