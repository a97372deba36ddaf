from __future__ import annotations

import argparse
from pathlib import Path

from orderdesk.catalog import load_seed_catalog
from orderdesk.qr import qr_png_bytes, table_order_url

OUT_DIR = Path(__file__).resolve().parents[1] / "qrcodes"


def main() -> None:
    parser = argparse.ArgumentParser(description="Write one ordering QR code PNG per seeded table")
    parser.add_argument("--base-url", default=None, help="public base URL (defaults to PUBLIC_BASE_URL)")
    parser.add_argument("--out", type=Path, default=OUT_DIR)
    args = parser.parse_args()

    tables = load_seed_catalog().get("tables") or []
    if not tables:
        raise SystemExit("No tables found in the seed catalog")

    args.out.mkdir(parents=True, exist_ok=True)

    made = 0
    for t in tables:
        number = str(t.get("number") or "").strip()
        if not number:
            print(f"SKIP (no number): {t}")
            continue

        url = table_order_url(number, args.base_url)
        table_type = t.get("type") or "table"
        out_path = args.out / f"{table_type}__{number}.png"
        out_path.write_bytes(qr_png_bytes(url))

        print(f"OK  {number}  ->  {out_path}  ({url})")
        made += 1

    print(f"\nDone. Generated {made} QR codes in: {args.out}")


if __name__ == "__main__":
    main()
