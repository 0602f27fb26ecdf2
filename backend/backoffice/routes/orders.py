# Overview: Flask API routes for the order lifecycle; parses input and returns JSON responses.

# backend/backoffice/routes/orders.py
"""Order API routes. Authentication is enforced upstream of this service."""

from flask import Blueprint, current_app, jsonify, request

from ..errors import OrderError, TransactionFailure
from ..services import order_service
from ..validation import coerce_limit


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _error_response(e: OrderError):
    if isinstance(e, TransactionFailure) and e.retryable:
        current_app.logger.warning("Retryable order transaction failure: %s", e.details)
    return jsonify(e.to_dict()), e.status_code


@orders_bp.post("/")
def create_order_route():
    """
    Create an order and reserve its stock.

    Body: customer?, payment_status, order_date, items[], subtotal_cents?,
    manual_discount_cents?, delivery_saving_cents? | free_delivery +
    delivery_charge_cents, changed_by?
    """
    try:
        data = request.get_json(silent=True) or {}
        changed_by = data.pop("changed_by", None)

        order = order_service.create_order(data, changed_by=changed_by)

        return jsonify({"order_id": order.id, "order": order.to_dict()}), 201

    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/")
def list_orders_route():
    """List recent orders. Query: limit, range (today|yesterday|last7|last30|all)."""
    try:
        limit = coerce_limit(request.args.get("limit"), current_app.config.get("RECENT_ORDERS_LIMIT", 20))
        range_name = request.args.get("range", "all")

        orders = order_service.list_recent_orders(limit=limit, range_name=range_name)
        return jsonify({"orders": orders}), 200

    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order, items = order_service.get_order(order_id)
        return jsonify({
            "order": order.to_dict(),
            "items": [item.to_dict() for item in items],
        }), 200

    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>")
def update_order_route(order_id: int):
    """Replace an order's lines, customer, status and totals."""
    try:
        data = request.get_json(silent=True) or {}
        data.pop("changed_by", None)

        order = order_service.update_order(order_id, data)
        return jsonify({"order": order.to_dict()}), 200

    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/status")
def update_order_status_route(order_id: int):
    """Change payment status only. Body: payment_status, changed_by?"""
    try:
        data = request.get_json(silent=True) or {}

        order = order_service.update_order_status(
            order_id,
            data.get("payment_status"),
            changed_by=data.get("changed_by"),
        )
        return jsonify({"order": order.to_dict()}), 200

    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(order_id)
        return jsonify({"deleted": True, "order_id": order_id}), 200

    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500
