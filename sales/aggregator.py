"""Totals for itemized sales.

Item rows arrive from HTML forms, JSON bodies or scripts in a few shapes.
They are normalized to a list of mappings, cleaned, and priced:

    line total = quantity * price          (always recomputed)
    subtotal   = sum of line totals
    total      = max(0, subtotal - discount + tax)

Rows with a missing, zero or non-numeric productId, quantity or price are
dropped rather than rejected. An empty item list is still a valid sale.
"""
import math
import re
from collections.abc import Mapping

FALLBACK_PRODUCT_NAME = "Product"

_FORM_ITEM_KEY = re.compile(r"^products\[([^\]]+)\]\[([^\]]+)\]$")


def to_number(value):
    """Float value of ``value``, or None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def items_from_form(form):
    """Group flat ``products[<i>][<field>]`` form keys into item mappings."""
    groups = {}
    for key in form.keys():
        match = _FORM_ITEM_KEY.match(key)
        if match:
            index, field = match.groups()
            groups.setdefault(index, {})[field] = form.get(key)

    def order(index):
        return (0, int(index), "") if index.isdigit() else (1, 0, index)

    return [groups[i] for i in sorted(groups, key=order)]


def normalize_items(raw):
    """Accept a list of items or a mapping of index -> item."""
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        raw = list(raw.values())
    if not isinstance(raw, (list, tuple)):
        return []
    return [item for item in raw if isinstance(item, Mapping)]


def clean_item(raw, catalog_names):
    product_id = raw.get("productId")
    if isinstance(product_id, bool) or not isinstance(product_id, (str, int)):
        return None
    product_id = str(product_id).strip()
    quantity = to_number(raw.get("quantity"))
    price = to_number(raw.get("price"))
    # A negative quantity or price still makes a line
    if not product_id or not quantity or not price:
        return None

    if product_id in catalog_names:
        name = catalog_names[product_id]
    else:
        name = raw.get("productName") or FALLBACK_PRODUCT_NAME

    return {
        "productId": product_id,
        "productName": name,
        "quantity": quantity,
        "price": price,
        "totalAmount": quantity * price,
    }


def adjustment(value):
    number = to_number(value)
    return 0.0 if number is None else number


def build_sale_totals(raw_items, catalog_names, discount=None, tax=None):
    """Clean ``raw_items`` and compute the sale's money fields.

    ``catalog_names`` maps product id to the current catalog name. Discount
    and tax are taken as given, signs included; only the total is clamped.
    """
    items = []
    for raw in normalize_items(raw_items):
        item = clean_item(raw, catalog_names)
        if item is not None:
            items.append(item)

    subtotal = sum(item["totalAmount"] for item in items)
    disc = adjustment(discount)
    tx = adjustment(tax)
    return {
        "items": items,
        "subtotal": subtotal,
        "discount": disc,
        "tax": tx,
        "total_amount": max(0, subtotal - disc + tx),
    }


def headline_product(items):
    if not items:
        return "Multiple Products"
    first = items[0].get("productName") or FALLBACK_PRODUCT_NAME
    if len(items) > 1:
        return f"{first} + {len(items) - 1} more"
    return first


def summarize_sales(simple_sales, multi_sales):
    """Merge both kinds of sale into one newest-first list for the sales page."""
    rows = []
    for s in simple_sales:
        rows.append({
            "id": s.id,
            "type": "simple",
            "customer_name": s.customer_name,
            "product_name": "Sale",
            "quantity": None,
            "total_amount": s.amount,
            "payment_method": s.payment_method,
            "date": s.date,
            "created_at": s.created_at or s.date,
        })
    for s in multi_sales:
        items = s.items or []
        rows.append({
            "id": s.id,
            "type": "multiple",
            "customer_name": s.customer_name,
            "product_name": headline_product(items),
            "quantity": sum(to_number(i.get("quantity")) or 0 for i in items),
            "total_amount": s.total_amount,
            "payment_method": s.payment_method,
            "date": s.date,
            "created_at": s.created_at or s.date,
        })
    rows.sort(key=lambda r: r["created_at"], reverse=True)

    return {
        "sales": rows,
        "total_sales": sum(r["total_amount"] or 0 for r in rows),
        "total_quantity": sum(r["quantity"] or 0 for r in rows if r["type"] == "multiple"),
    }
