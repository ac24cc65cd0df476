# Overview: Spreadsheet (CSV) export of gift lines for the visible, searched client set.

from __future__ import annotations

import csv
import io
from datetime import date
from typing import Sequence

from ..records import Client
from ..time_utils import today_iso


CSV_HEADER = (
    "No", "입력자", "업체명", "성함", "직함", "연락처", "우편번호",
    "주소", "상세주소", "품목", "수량", "금액", "상태", "비고",
)

# Spreadsheet apps need the BOM to read the file as UTF-8
BOM = "\ufeff"


def export_rows(clients: Sequence[Client]) -> list[list]:
    """One row per gift line; No is the client's 1-based position in `clients`."""
    rows = []
    for index, client in enumerate(clients, start=1):
        for record in client.gift_history:
            rows.append([
                index,
                client.registered_by,
                client.company,
                client.name,
                client.position,
                client.phone,
                client.postcode,
                client.address,
                client.address_detail,
                record.item_name,
                record.quantity,
                record.price,
                record.status,
                record.note or "",
            ])
    return rows


def export_csv(clients: Sequence[Client]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(export_rows(clients))
    # No trailing newline after the last row
    return BOM + buf.getvalue().rstrip("\n")


def export_csv_bytes(clients: Sequence[Client]) -> bytes:
    return export_csv(clients).encode("utf-8")


def export_filename(on: date | None = None) -> str:
    stamp = on.isoformat() if on is not None else today_iso()
    return f"gift_list_export_{stamp}.csv"
