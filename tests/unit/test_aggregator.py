from __future__ import annotations

from stock_import.models.events import CompleteEvent, RowErrorEvent
from stock_import.models.records import NormalizedRecord
from stock_import.services.aggregator import ResultAggregator


def _rec(barcode: str, row_index: int) -> NormalizedRecord:
    return NormalizedRecord(
        barcode=barcode,
        product_name=f"Product {barcode}",
        variant="",
        qty=1,
        unit_cost=1.0,
        warehouse="WH1",
        row_index=row_index,
    )


SUBMITTED = [_rec("A1", 1), _rec("B2", 3), _rec("C3", 4)]


def test_row_error_maps_back_to_source_row():
    agg = ResultAggregator(SUBMITTED)
    outcome = agg.record_error(RowErrorEvent(row=2, message="constraint failed"))
    assert outcome.row == 2
    assert outcome.barcode == "B2"
    assert outcome.source_row == 3
    assert outcome.describe() == "Row 3 (B2): failed: constraint failed"


def test_out_of_range_row_keeps_server_numbering():
    agg = ResultAggregator(SUBMITTED)
    outcome = agg.record_error(RowErrorEvent(row=9, message="x"))
    assert outcome.source_row is None
    assert outcome.barcode is None
    assert outcome.describe() == "Row 9: failed: x"


def test_summary_prefers_failed_rows_from_complete_event():
    agg = ResultAggregator(SUBMITTED)
    agg.record_error(RowErrorEvent(row=1, message="stream-side message"))
    complete = CompleteEvent(
        inserted=2,
        failed=1,
        success_rows=[{"row": 1}, {"row": 3}],
        failed_rows=[{"row": 2, "reason": "Duplicate entry 'B2' for key 'barcode'", "data": {"barcode": "B2"}}],
        message="done",
    )
    summary = agg.build_summary(complete)
    assert summary.success is True
    assert summary.inserted == 2
    assert summary.failed == 1
    assert [r.row for r in summary.failed_rows] == [2]
    assert summary.failed_rows[0].data == {"barcode": "B2"}
    assert summary.success_rows == [{"row": 1}, {"row": 3}]
    assert summary.message == "done"


def test_summary_falls_back_to_stream_errors():
    agg = ResultAggregator(SUBMITTED)
    agg.record_error(RowErrorEvent(row=3, message="bad cost"))
    summary = agg.build_summary(CompleteEvent(inserted=2, failed=1))
    assert [(r.row, r.source_row, r.message) for r in summary.failed_rows] == [(3, 4, "bad cost")]


def test_counts_come_from_complete_event_only():
    agg = ResultAggregator(SUBMITTED)
    agg.record_error(RowErrorEvent(row=1, message="a"))
    agg.record_error(RowErrorEvent(row=2, message="b"))
    summary = agg.build_summary(CompleteEvent(inserted=3, failed=0))
    assert summary.inserted == 3
    assert summary.failed == 0


def test_duplicate_rows_are_reported_as_updates():
    agg = ResultAggregator(SUBMITTED)
    summary = agg.build_summary(
        CompleteEvent(
            inserted=1,
            failed=2,
            failed_rows=[
                {"row": 1, "reason": "Duplicate entry 'A1' for key 'barcode'"},
                {"row": 2, "message": "Data too long for column 'variant'"},
            ],
        )
    )
    assert summary.updated == 1
    assert summary.hard_failed == 1
    assert summary.preview() == [
        "Row 1 (A1): updated existing record",
        "Row 3 (B2): failed: Data too long for column 'variant'",
    ]


def test_barcode_from_failed_row_data_when_unmapped():
    agg = ResultAggregator()
    summary = agg.build_summary(
        CompleteEvent(inserted=0, failed=1, failed_rows=[{"row": 5, "reason": "x", "data": {"barcode": "Z9"}}])
    )
    assert summary.failed_rows[0].barcode == "Z9"


def test_to_dict_uses_wire_field_names():
    agg = ResultAggregator(SUBMITTED)
    summary = agg.build_summary(CompleteEvent(inserted=1, failed=1, failed_rows=[{"row": 2, "reason": "r"}]))
    data = summary.to_dict()
    assert data["successRows"] == []
    assert data["failedRows"] == [{"row": 2, "reason": "r", "barcode": "B2", "sourceRow": 3}]
