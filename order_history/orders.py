import re

from . import settings
from .money import format_cents, to_cents

RETURNED_RE = re.compile(
    r"(Return|Returned|Refund|Refunded|Replacement)", re.IGNORECASE
)
QUANTITY_PREFIX_RE = re.compile(r"^(\d+)\s+(of|x)\s+", re.IGNORECASE)

NAME_PLACEHOLDER = "article_name_selector error"
DATE_PLACEHOLDER = "order_date_selector error"

CSV_HEADER = [
    "Date",
    "Shipment Status",
    "Article Count",
    "Article Name",
    "Single Price",
    "Total Price",
    "Tags",
]


def clean_item_name(text: str | None) -> str:
    name = " ".join((text or "").split())
    if not name:
        return NAME_PLACEHOLDER
    return name[: settings.NAME_MAX_LENGTH].replace(";", ",")


def split_quantity(name: str) -> tuple[int, str]:
    """
    "2 x Widget" / "2 of Widget" -> (2, "Widget")
    """
    match = QUANTITY_PREFIX_RE.match(name)
    if not match:
        return 1, name
    count = int(match.group(1)) or 1
    return count, name[match.end() :]


def parse_quantity(text: str | None) -> int | None:
    """Explicit quantity badge ("Qty: 3", "3"), if any"""
    if not text:
        return None
    match = re.search(r"(\d+)", text)
    if not match:
        return None
    return int(match.group(1)) or None


def is_returned(status: str | None) -> bool:
    return bool(status and RETURNED_RE.search(status))


def csv_row(date, status, count, name, single, total) -> list[str]:
    return [
        date,
        status,
        str(count),
        name,
        format_cents(single),
        format_cents(total),
        "",
    ]


def summarize_order(order: dict) -> tuple[list[list[str]], dict]:
    """
    Turns a parsed order into CSV rows and cent totals.

    Returned shipments are listed, but count as 0 in the
    "Total Price" column and in what was paid. When the order
    does not state shipping, it is inferred from what is left
    of the order total after the item subtotal and tax.
    """
    date = order.get("date") or DATE_PLACEHOLDER
    rows = []
    totals = {"items": 0, "paid": 0, "shipping": 0, "tax": 0, "total": 0}
    for shipment in order.get("shipments", []):
        status = shipment.get("status", "")
        returned = is_returned(status)
        for item in shipment.get("items", []):
            name = clean_item_name(item.get("name"))
            count, name = split_quantity(name)
            explicit = parse_quantity(item.get("quantity"))
            if explicit:
                count = explicit
            single = to_cents(item.get("price"))
            line = single * count
            totals["items"] += line
            if not returned:
                totals["paid"] += line
            item.update({"count": count, "single": single, "line": line})
            rows.append(
                csv_row(
                    date, status, count, name, single, 0 if returned else line
                )
            )

    if order.get("tax") is not None:
        totals["tax"] = max(order["tax"], 0)

    if order.get("shipping") is not None:
        totals["shipping"] = max(order["shipping"], 0)
    else:
        order_total = order.get("grand_total")
        if order_total is None:
            order_total = order.get("total", 0)
        items = order.get("items_subtotal")
        if items is None:
            items = totals["items"]
        # Gift cards/credits can make this negative
        totals["shipping"] = max(order_total - items - totals["tax"], 0)

    if totals["shipping"] > 0:
        shipping = totals["shipping"]
        rows.append(csv_row(date, "", 1, "shipment", shipping, shipping))
    if totals["tax"] > 0:
        rows.append(csv_row(date, "", 1, "tax", totals["tax"], totals["tax"]))

    totals["total"] = totals["paid"] + totals["shipping"] + totals["tax"]
    return rows, totals
