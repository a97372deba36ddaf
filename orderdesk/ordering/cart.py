# orderdesk/ordering/cart.py
from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List

from ..models import q2


def snapshot_lines(items: Iterable[Any]) -> List[Dict[str, Any]]:
    """Point-in-time copy of the ordered lines (name and price as ordered)."""
    out: List[Dict[str, Any]] = []
    for it in items:
        out.append(
            {
                "id": it.id,
                "name": it.name.strip(),
                "price": str(q2(it.price)),
                "quantity": int(it.quantity),
            }
        )
    return out


def dump_cart(cart: List[Dict[str, Any]]) -> str:
    return json.dumps(cart, ensure_ascii=False)


def load_cart(items_json: str | None) -> List[Dict[str, Any]]:
    try:
        v = json.loads(items_json or "[]")
        return v if isinstance(v, list) else []
    except json.JSONDecodeError:
        return []


def line_total(line: Dict[str, Any]) -> Decimal:
    qty = int(line.get("quantity", 1) or 1)
    try:
        price = Decimal(str(line.get("price", "0") or "0"))
    except InvalidOperation:
        price = Decimal("0")
    return q2(price * qty)


def cart_total(cart: List[Dict[str, Any]]) -> Decimal:
    total = Decimal("0")
    for x in cart:
        total += line_total(x)
    return q2(total)
