from __future__ import annotations

import logging

import pytest

from rowcursor.domain.cursor import Cursor, CursorStatus, Window
from rowcursor.domain.exceptions import SourceError
from rowcursor.domain.reporting.collector import ReportCollector
from rowcursor.infra.sources.iterable_source import IterableRowProducer, IterableSource
from rowcursor.usecases.query_executor import QueryExecutor
from rowcursor.usecases.stream_usecase import StreamUseCase

logger = logging.getLogger("test.stream")


class BrokenProducer:
    def advance_one(self, source, shape, slot):
        raise RuntimeError("source went away")


def test_stream_fills_report_and_sink():
    rows = [{"id": i, "password": "p"} for i in range(6)]
    cursor = QueryExecutor().query_iterable(rows, window=Window(offset=2, limit=3))
    report = ReportCollector(run_id="r1", command="test")
    received = []

    result = StreamUseCase(report_items_limit=2).run(cursor, received.append, logger, "r1", report)

    assert [row["id"] for row in received] == [2, 3, 4]
    assert result.rows_yielded == 3
    assert result.rows_read_from_source == 5
    assert result.last_index == 4
    assert result.status == CursorStatus.CONSUMED
    assert report.summary.window == {"offset": 2, "limit": 3}
    assert report.summary.cursor_status == "consumed"
    assert len(report.items) == 2
    assert report.meta.items_truncated is True
    assert report.items[0]["password"] == "***"


def test_stream_closes_cursor_when_sink_fails():
    cursor = QueryExecutor().query_iterable(range(5))
    report = ReportCollector(run_id="r2", command="test")

    def sink(row):
        if row == 1:
            raise ValueError("sink is full")

    with pytest.raises(ValueError):
        StreamUseCase(report_items_limit=10).run(cursor, sink, logger, "r2", report)

    assert cursor.status == CursorStatus.CLOSED
    assert report.summary.rows_yielded == 1
    assert report.summary.cursor_status == "closed"


def test_stream_propagates_source_error_after_release():
    source = IterableSource([1])
    cursor = Cursor(BrokenProducer(), source)
    report = ReportCollector(run_id="r3", command="test")

    with pytest.raises(SourceError):
        StreamUseCase(report_items_limit=10).run(cursor, lambda row: None, logger, "r3", report)

    assert source.released is True
    assert report.summary.rows_yielded == 0
    assert report.summary.last_index is None


def test_stream_of_empty_source():
    cursor = Cursor(IterableRowProducer(), IterableSource([]))
    report = ReportCollector(run_id="r4", command="test")
    result = StreamUseCase(report_items_limit=10).run(cursor, lambda row: None, logger, "r4", report)
    assert result.rows_yielded == 0
    assert result.status == CursorStatus.CONSUMED
