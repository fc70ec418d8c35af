# tests/test_export.py
import csv
import io
from datetime import datetime, timezone

from factories import make_record

from marketdata.domain.types import ImportedRecord, Provenance, ReviewStatus
from marketdata.service_layer.export import CSV_COLUMNS, export_csv


def test_export_has_fixed_header_and_one_row_per_record():
    items = [
        ImportedRecord(
            record=make_record(address="Herzl 10, Tel Aviv", rooms=3.5, verified=False, source=Provenance.broker),
            import_id="IMP-1",
            config_id="c",
            imported_at=datetime(2024, 4, 1, 8, 30, tzinfo=timezone.utc),
            status=ReviewStatus.approved,
        )
    ]
    rows = list(csv.reader(io.StringIO(export_csv(items))))

    assert rows[0] == CSV_COLUMNS
    assert len(CSV_COLUMNS) == 14
    assert rows[1] == [
        "2024-03-01",
        "Herzl 10, Tel Aviv",
        "2000000",
        "20000",
        "100",
        "3.5",
        "2",
        "5",
        "good",
        "20",
        "no",
        "broker",
        "2024-04-01T08:30:00+00:00",
        "approved",
    ]


def test_export_of_nothing_is_header_only():
    assert export_csv([]).strip() == ",".join(CSV_COLUMNS)
