# orderdesk/qr.py
from __future__ import annotations

import base64
from io import BytesIO
from urllib.parse import quote

import qrcode

from .config import settings


def table_order_url(table_number: str, base_url: str | None = None) -> str:
    base = (base_url or settings.public_base_url).rstrip("/")
    return f"{base}/order/{quote(str(table_number), safe='')}"


def qr_png_bytes(url: str) -> bytes:
    qr = qrcode.QRCode(box_size=8, border=2)
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = BytesIO()
    img.save(buf)
    return buf.getvalue()


def qr_data_url(url: str) -> str:
    encoded = base64.b64encode(qr_png_bytes(url)).decode("ascii")
    return f"data:image/png;base64,{encoded}"
