"""
Request payload validation for the order core.

Everything here is side-effect free and runs before a transaction is
opened: a payload that fails validation never touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .errors import ValidationError
from .models.orders import PaymentStatus
from .services.pricing import DEFAULT_FREE_DELIVERY_MIN_QTY, compute_delivery_saving, is_free_delivery_eligible
from .time_utils import coerce_datetime

# Maximum amount: 9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999


@dataclass(frozen=True)
class CustomerInput:
    name: str | None = None
    phone: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class OrderLineInput:
    variant_id: int
    quantity: int
    # None -> take the variant's current selling price at reservation time
    unit_price_cents: int | None = None


@dataclass(frozen=True)
class OrderInput:
    payment_status: str
    order_date: datetime
    lines: list[OrderLineInput]
    customer: CustomerInput = field(default_factory=CustomerInput)
    subtotal_cents: int | None = None
    manual_discount_cents: int = 0
    delivery_saving_cents: int = 0

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)


@dataclass(frozen=True)
class ReturnLineInput:
    variant_id: int
    quantity: int


@dataclass(frozen=True)
class ReturnInput:
    order_id: int
    reason: str
    lines: list[ReturnLineInput]


def coerce_int(name: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def coerce_amount(name: str, value: Any, *, default: int | None = 0) -> int | None:
    """Non-negative amount in cents."""
    if value is None:
        return default
    amount = coerce_int(name, value)
    if amount < 0:
        raise ValidationError(f"{name} must be >= 0")
    if amount > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{name} exceeds maximum allowed amount")
    return amount


def coerce_limit(value: Any, default: int) -> int:
    """Listing page size from a query string; missing -> default, must be >= 1."""
    if value is None or value == "":
        return default
    limit = coerce_int("limit", value)
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return limit


def parse_status(value: Any) -> str:
    if isinstance(value, PaymentStatus):
        return value.value
    if not isinstance(value, str) or value not in PaymentStatus.values():
        raise ValidationError(
            "Invalid payment_status",
            details={"allowed": PaymentStatus.values()},
        )
    return value


def _parse_text(name: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip() or None


def _parse_customer(raw: Any) -> CustomerInput:
    if raw is None:
        return CustomerInput()
    if not isinstance(raw, dict):
        raise ValidationError("customer must be an object")
    return CustomerInput(
        name=_parse_text("customer.name", raw.get("name")),
        phone=_parse_text("customer.phone", raw.get("phone")),
        address=_parse_text("customer.address", raw.get("address")),
    )


def _parse_order_lines(raw: Any) -> list[OrderLineInput]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("No items in order.")

    lines = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        if item.get("variant_id") is None:
            raise ValidationError(f"items[{idx}].variant_id is required")
        quantity = coerce_int(f"items[{idx}].quantity", item.get("quantity"))
        if quantity <= 0:
            raise ValidationError(f"items[{idx}].quantity must be > 0")
        lines.append(OrderLineInput(
            variant_id=coerce_int(f"items[{idx}].variant_id", item["variant_id"]),
            quantity=quantity,
            unit_price_cents=coerce_amount(f"items[{idx}].unit_price_cents", item.get("unit_price_cents"), default=None),
        ))
    return lines


def _parse_order_date(value: Any) -> datetime:
    if value is None or value == "":
        raise ValidationError("Missing required fields: order_date")
    try:
        dt = coerce_datetime(value)
    except ValueError:
        raise ValidationError("order_date must be an ISO-8601 date or datetime")
    if dt is None:
        raise ValidationError("order_date must be an ISO-8601 date or datetime")
    return dt


def parse_order_payload(payload: Any, *, free_delivery_min_qty: int = DEFAULT_FREE_DELIVERY_MIN_QTY) -> OrderInput:
    """
    Validate and normalize an order create/edit payload.

    Delivery saving can be given as an amount (delivery_saving_cents) or as
    free_delivery + delivery_charge_cents. Either way it is only allowed once
    the order reaches free_delivery_min_qty units.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    missing = [f for f in ("payment_status", "order_date", "items") if f not in payload]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    lines = _parse_order_lines(payload["items"])
    total_qty = sum(line.quantity for line in lines)

    if payload.get("delivery_saving_cents") is not None:
        saving = coerce_amount("delivery_saving_cents", payload["delivery_saving_cents"])
        if saving and not is_free_delivery_eligible(total_qty, free_delivery_min_qty):
            raise ValidationError(
                f"Free delivery requires at least {free_delivery_min_qty} items",
                details={"total_quantity": total_qty},
            )
    else:
        saving = compute_delivery_saving(
            total_qty,
            coerce_amount("delivery_charge_cents", payload.get("delivery_charge_cents")),
            bool(payload.get("free_delivery")),
            free_delivery_min_qty,
        )

    return OrderInput(
        payment_status=parse_status(payload["payment_status"]),
        order_date=_parse_order_date(payload["order_date"]),
        lines=lines,
        customer=_parse_customer(payload.get("customer")),
        subtotal_cents=coerce_amount("subtotal_cents", payload.get("subtotal_cents"), default=None),
        manual_discount_cents=coerce_amount("manual_discount_cents", payload.get("manual_discount_cents")),
        delivery_saving_cents=saving,
    )


def parse_return_payload(payload: Any) -> ReturnInput:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if payload.get("order_id") is None:
        raise ValidationError("order_id is required")
    order_id = coerce_int("order_id", payload["order_id"])

    reason = _parse_text("reason", payload.get("reason"))
    if not reason:
        raise ValidationError("reason is required")

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("No return items")

    lines = []
    for idx, item in enumerate(raw_items):
        if not isinstance(item, dict) or item.get("variant_id") is None:
            raise ValidationError(f"items[{idx}].variant_id is required")
        quantity = coerce_int(f"items[{idx}].quantity", item.get("quantity"))
        if quantity <= 0:
            raise ValidationError(f"items[{idx}].quantity must be > 0")
        lines.append(ReturnLineInput(
            variant_id=coerce_int(f"items[{idx}].variant_id", item["variant_id"]),
            quantity=quantity,
        ))

    return ReturnInput(order_id=order_id, reason=reason, lines=lines)
