from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from market.config import settings

logger = logging.getLogger(__name__)


def _buyer_name(order: Dict[str, Any]) -> str:
    user = order.get("user") or {}
    name = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()
    return name or str(user.get("email") or order.get("userId") or "-")


def generate_order_receipt_pdf(order: Dict[str, Any], export_dir: Optional[str] = None) -> str:
    """Квитанция по заказу (PDF). Возвращает путь к файлу."""
    out_dir = export_dir or settings.export_dir
    os.makedirs(out_dir, exist_ok=True)

    order_id = int(order["id"])
    currency = str(order.get("currency") or settings.currency)
    filename = f"receipt_{order_id}.pdf"
    path = os.path.join(out_dir, filename)

    c = canvas.Canvas(path, pagesize=A4)
    _, h = A4

    y = h - 50
    c.setFont("Helvetica-Bold", 14)
    c.drawString(40, y, f"ORDER #{order_id:06d}")
    y -= 20

    c.setFont("Helvetica", 11)
    c.drawString(40, y, f"Buyer: {_buyer_name(order)}")
    y -= 16
    c.drawString(40, y, f"Date: {str(order.get('createdAt') or '')[:19]}")
    y -= 16
    c.drawString(40, y, f"Status: {order.get('status') or '-'}")
    y -= 16
    c.drawString(40, y, f"Currency: {currency}")
    y -= 24

    # header
    c.setFont("Helvetica-Bold", 10)
    c.drawString(40, y, "Item")
    c.drawString(310, y, "Qty")
    c.drawString(360, y, "Price")
    c.drawString(440, y, "Total")
    y -= 10
    c.line(40, y, 550, y)
    y -= 16

    c.setFont("Helvetica", 10)
    for it in order.get("items") or []:
        listing = it.get("listing") or {}
        title = str(listing.get("title") or f"listing #{it.get('listingId')}")
        qty = int(it.get("quantity") or 1)
        price = float(it.get("unitPrice") or 0)
        c.drawString(40, y, title[:45])
        c.drawRightString(340, y, f"{qty}")
        c.drawRightString(420, y, f"{price:.{settings.decimals}f}")
        c.drawRightString(550, y, f"{qty * price:.{settings.decimals}f}")
        y -= 14
        if y < 80:
            c.showPage()
            y = h - 50
            c.setFont("Helvetica", 10)

    y -= 10
    c.line(40, y, 550, y)
    y -= 18
    c.setFont("Helvetica-Bold", 12)
    total = float(order.get("totalAmount") or 0)
    c.drawRightString(550, y, f"TOTAL: {total:.{settings.decimals}f} {currency}")

    c.save()
    logger.info("Receipt for order %s written to %s", order_id, path)
    return path
