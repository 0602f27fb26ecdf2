# Overview: Customer directory upsert used while saving orders.

from __future__ import annotations

from ..extensions import db
from ..models import Customer


def _clean(value: str | None) -> str:
    return (value or "").strip()


def upsert_customer(name: str | None, phone: str | None, address: str | None) -> int | None:
    """
    Find-or-create the customer for an order, keyed by phone.

    - no name and no phone -> None (walk-in / guest order)
    - phone matches -> merge: only non-empty new values overwrite name/address
    - otherwise -> insert, naming the customer after the phone if no name given

    Does not commit; runs in the caller's unit of work so a later failure
    also discards a freshly inserted customer.
    """
    n = _clean(name)
    p = _clean(phone)
    a = _clean(address)

    if not n and not p:
        return None

    if p:
        existing = db.session.query(Customer).filter_by(phone=p).first()
        if existing is not None:
            if n:
                existing.name = n
            if a:
                existing.address = a
            db.session.flush()
            return existing.id

    customer = Customer(
        name=n or (f"Customer {p}" if p else "Customer"),
        phone=p or None,
        address=a or None,
    )
    db.session.add(customer)
    db.session.flush()
    return customer.id
