# marketdata/service_layer/export.py
from __future__ import annotations

import csv
import io
from typing import Iterable

from ..domain.types import ImportedRecord

CSV_COLUMNS = [
    "transaction_date",
    "address",
    "price",
    "price_per_sqm",
    "area",
    "rooms",
    "floor",
    "total_floors",
    "condition",
    "age",
    "verified",
    "source",
    "imported_at",
    "status",
]


def _row(item: ImportedRecord) -> list[str]:
    r = item.record
    return [
        r.transaction_date.isoformat(),
        r.address,
        f"{r.price:.0f}",
        f"{r.price_per_sqm:.0f}",
        f"{r.area:g}",
        f"{r.rooms:g}",
        str(r.floor),
        str(r.total_floors),
        r.condition,
        str(r.age),
        "yes" if r.verified else "no",
        r.source.value,
        item.imported_at.isoformat(timespec="seconds"),
        item.status.value,
    ]


def export_csv(items: Iterable[ImportedRecord]) -> str:
    """Header plus one row per imported record, in input order."""
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(CSV_COLUMNS)
    for item in items:
        w.writerow(_row(item))
    return buf.getvalue()
