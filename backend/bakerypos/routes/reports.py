from flask import Blueprint, jsonify, request

from ..decorators import require_actor
from ..errors import BakeryError
from ..services import reporting_service
from ..time_utils import business_today
from ..validation import require_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range_args():
    today = business_today()
    from_date = require_date(request.args.get("from"), field="from", default=today.replace(day=1))
    to_date = require_date(request.args.get("to"), field="to", default=today)
    return from_date, to_date


@reports_bp.get("/dashboard")
@require_actor
def dashboard_report():
    return jsonify(reporting_service.dashboard()), 200


@reports_bp.get("/daily")
@require_actor
def daily_report():
    try:
        day = require_date(request.args.get("date"), default=business_today())
        return jsonify(reporting_service.daily_summary(day)), 200
    except BakeryError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/sales")
@require_actor
def sales_report():
    try:
        from_date, to_date = _range_args()
        return jsonify(reporting_service.sales_by_day(from_date, to_date)), 200
    except BakeryError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/top-items")
@require_actor
def top_items_report():
    try:
        from_date, to_date = _range_args()
        limit = request.args.get("limit", 10, type=int)
        return jsonify({"items": reporting_service.top_items(from_date, to_date, limit)}), 200
    except BakeryError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/orders")
@require_actor
def order_stats_report():
    try:
        from_date = require_date(request.args.get("from"), field="from")
        to_date = require_date(request.args.get("to"), field="to")
        return jsonify(reporting_service.order_stats(from_date, to_date)), 200
    except BakeryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
