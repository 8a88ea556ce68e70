from __future__ import annotations

import logging

import pytest

from rowcursor.domain.cursor import Cursor, CursorStatus, Window
from rowcursor.domain.error_codes import ErrorCode
from rowcursor.domain.exceptions import (
    CursorExhaustedError,
    IllegalCursorReuseError,
    SourceError,
    UnsupportedCursorOperationError,
)
from rowcursor.infra.sources.iterable_source import IterableRowProducer, IterableSource


class CountingProducer(IterableRowProducer):
    def __init__(self) -> None:
        self.calls = 0

    def advance_one(self, source, shape, slot):
        self.calls += 1
        super().advance_one(source, shape, slot)


class FailingProducer:
    def __init__(self, fail_on_call: int, exc: Exception) -> None:
        self.fail_on_call = fail_on_call
        self.exc = exc
        self.calls = 0

    def advance_one(self, source, shape, slot):
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise self.exc
        slot.put({"n": self.calls})


class RecordingSource(IterableSource):
    def __init__(self, rows=(), fail: bool = False) -> None:
        super().__init__(rows)
        self.release_calls = 0
        self.fail = fail

    def release(self) -> None:
        self.release_calls += 1
        super().release()
        if self.fail:
            raise OSError("boom on release")


def test_new_cursor_is_created_not_open():
    cursor = Cursor(CountingProducer(), IterableSource([1]))
    assert cursor.status == CursorStatus.CREATED
    assert cursor.is_open() is False
    assert cursor.is_consumed() is False


def test_cursor_is_open_while_rows_remain():
    cursor = Cursor(CountingProducer(), IterableSource([1, 2]))
    it = cursor.iterator()
    assert it.next() == 1
    assert cursor.is_open()
    assert cursor.is_consumed() is False


def test_second_iterator_call_fails():
    cursor = Cursor(CountingProducer(), IterableSource([1, 2]))
    cursor.iterator()
    with pytest.raises(IllegalCursorReuseError) as excinfo:
        cursor.iterator()
    assert excinfo.value.code == ErrorCode.CURSOR_REUSE.value


def test_second_iterator_call_fails_after_consumption():
    cursor = Cursor(CountingProducer(), IterableSource([1, 2]))
    assert list(cursor) == [1, 2]
    assert cursor.is_consumed()
    with pytest.raises(IllegalCursorReuseError):
        iter(cursor)


def test_next_after_has_next_false_fails():
    cursor = Cursor(CountingProducer(), IterableSource([1]))
    it = cursor.iterator()
    assert it.next() == 1
    assert it.has_next() is False
    with pytest.raises(CursorExhaustedError):
        it.next()


def test_next_without_has_next_fetches():
    cursor = Cursor(CountingProducer(), IterableSource(["a", "b"]))
    it = cursor.iterator()
    assert it.next() == "a"
    assert it.next() == "b"
    with pytest.raises(CursorExhaustedError):
        it.next()


def test_has_next_is_idempotent():
    producer = CountingProducer()
    cursor = Cursor(producer, IterableSource([1, 2, 3]))
    it = cursor.iterator()
    assert it.has_next()
    assert it.has_next()
    assert producer.calls == 1
    assert it.next() == 1


def test_remove_is_unsupported():
    cursor = Cursor(CountingProducer(), IterableSource([1]))
    it = cursor.iterator()
    with pytest.raises(UnsupportedCursorOperationError):
        it.remove()
    assert it.next() == 1


def test_close_after_one_of_five_rows():
    producer = CountingProducer()
    source = RecordingSource(range(5))
    cursor = Cursor(producer, source)
    it = cursor.iterator()
    assert it.next() == 0
    calls = producer.calls

    cursor.close()

    assert cursor.status == CursorStatus.CLOSED
    assert cursor.is_consumed() is False
    assert it.has_next() is False
    with pytest.raises(CursorExhaustedError):
        it.next()
    assert producer.calls == calls
    assert source.release_calls == 1


def test_close_drops_lookahead_row():
    producer = CountingProducer()
    cursor = Cursor(producer, IterableSource(range(5)))
    it = cursor.iterator()
    assert it.has_next()

    cursor.close()

    assert it.has_next() is False
    assert producer.calls == 1


@pytest.mark.parametrize("consume", [0, 1, 3])
def test_close_is_idempotent_in_any_state(consume):
    source = RecordingSource(range(2))
    cursor = Cursor(CountingProducer(), source)
    it = cursor.iterator()
    for _ in range(consume):
        if it.has_next():
            it.next()
        else:
            it.has_next()

    cursor.close()
    cursor.close()
    cursor.close()

    assert source.release_calls == 1
    assert cursor.is_open() is False
    assert it.has_next() is False
    assert cursor.is_open() is False


def test_close_before_iteration_prevents_fetching():
    producer = CountingProducer()
    cursor = Cursor(producer, IterableSource([1, 2]))
    cursor.close()
    assert list(cursor) == []
    assert producer.calls == 0
    assert cursor.status == CursorStatus.CLOSED


def test_release_errors_are_swallowed(caplog):
    source = RecordingSource(fail=True)
    producer = FailingProducer(fail_on_call=99, exc=RuntimeError("unused"))
    cursor = Cursor(producer, source, logger=logging.getLogger("test.cursor"))

    with caplog.at_level(logging.WARNING, logger="test.cursor"):
        cursor.close()
        cursor.close()

    assert cursor.status == CursorStatus.CLOSED
    assert source.release_calls == 1
    assert "source release failed" in caplog.text


def test_release_error_on_exhaustion_still_consumes():
    source = RecordingSource([1], fail=True)
    cursor = Cursor(CountingProducer(), source)
    assert list(cursor) == [1]
    assert cursor.is_consumed()


def test_source_failure_is_wrapped_and_releases_source():
    source = RecordingSource()
    producer = FailingProducer(fail_on_call=2, exc=OSError("disk gone"))
    cursor = Cursor(producer, source)
    it = cursor.iterator()
    assert it.next() == {"n": 1}

    with pytest.raises(SourceError) as excinfo:
        it.next()

    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.code == ErrorCode.SOURCE_ERROR.value
    assert excinfo.value.details["cause"] == "OSError"
    assert source.release_calls == 1
    assert cursor.status == CursorStatus.CLOSED
    assert it.has_next() is False
    assert producer.calls == 2

    cursor.close()
    assert source.release_calls == 1


def test_source_error_from_producer_is_not_rewrapped():
    original = SourceError("already wrapped")
    cursor = Cursor(FailingProducer(fail_on_call=1, exc=original), RecordingSource())
    with pytest.raises(SourceError) as excinfo:
        list(cursor)
    assert excinfo.value is original


def test_failure_during_skip_phase_releases_source():
    source = RecordingSource()
    producer = FailingProducer(fail_on_call=2, exc=ValueError("bad row"))
    cursor = Cursor(producer, source, window=Window(offset=3))
    with pytest.raises(SourceError):
        cursor.iterator().has_next()
    assert source.release_calls == 1
    assert cursor.rows_read_from_source == 1


def test_context_manager_closes_on_early_exit():
    source = RecordingSource(range(10))
    with Cursor(CountingProducer(), source) as cursor:
        for row in cursor:
            if row == 2:
                break
    assert cursor.status == CursorStatus.CLOSED
    assert source.release_calls == 1


def test_current_index_counts_from_offset():
    cursor = Cursor(CountingProducer(), IterableSource(range(10)), window=Window(offset=4, limit=2))
    it = cursor.iterator()
    it.next()
    assert cursor.current_index() == 4
    it.next()
    assert cursor.current_index() == 5
    assert cursor.is_consumed()
