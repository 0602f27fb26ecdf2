# Overview: Flask API routes for sales returns.

from flask import Blueprint, current_app, jsonify, request

from ..errors import OrderError
from ..services import return_service
from ..validation import coerce_limit


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("/")
def create_return_route():
    """
    Record a customer return and put the units back in stock.

    Body: order_id, reason, items: [{variant_id, quantity}]
    """
    try:
        data = request.get_json(silent=True) or {}
        sales_return = return_service.create_sales_return(data)

        payload = sales_return.to_dict()
        payload["items"] = [item.to_dict() for item in sales_return.items]
        return jsonify({"return": payload}), 201

    except OrderError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("/")
def list_returns_route():
    try:
        limit = coerce_limit(request.args.get("limit"), 10)
        return jsonify({"returns": return_service.list_recent_returns(limit)}), 200

    except OrderError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list returns")
        return jsonify({"error": "Internal server error"}), 500
