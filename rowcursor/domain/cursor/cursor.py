from __future__ import annotations

import logging
from typing import Any, Iterator

from rowcursor.domain.cursor.row_shape import DEFAULT_ROW_SHAPE, Row, RowShape
from rowcursor.domain.cursor.row_slot import RowSlot
from rowcursor.domain.cursor.status import CursorStatus
from rowcursor.domain.cursor.window import DEFAULT_WINDOW, Window
from rowcursor.domain.exceptions import (
    CursorExhaustedError,
    IllegalCursorReuseError,
    SourceError,
    UnsupportedCursorOperationError,
)
from rowcursor.domain.ports.sources import RowProducerProtocol, SourceHandleProtocol


class Cursor:
    """
    Назначение/ответственность:
        Ленивый однопроходный курсор поверх продюсера строк с окном offset/limit.
        Владеет источником и гарантированно освобождает его ровно один раз:
        при исчерпании, достижении limit, явном close() и при ошибке выборки.
    Взаимодействия:
        - Единственный CursorIterator выдаётся через iterator()/__iter__.
        - Продюсер вызывается только из итератора через _fetch_next_respecting_window.
    Ограничения:
        Не потокобезопасен.
    """

    def __init__(
        self,
        producer: RowProducerProtocol,
        source: SourceHandleProtocol,
        shape: RowShape = DEFAULT_ROW_SHAPE,
        window: Window = DEFAULT_WINDOW,
        logger: logging.Logger | None = None,
    ) -> None:
        self._producer = producer
        self._source = source
        self._shape = shape
        self._window = window
        self._slot = RowSlot()
        self._status = CursorStatus.CREATED
        self._rows_read_from_source = 0
        self._iterator: CursorIterator | None = CursorIterator(self)
        self._issued: CursorIterator | None = None
        self._logger = logger or logging.getLogger("rowcursor.cursor")

    def __enter__(self) -> "Cursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> "CursorIterator":
        return self.iterator()

    def __repr__(self) -> str:
        return (
            f"Cursor(status={self._status.value}, window={self._window}, "
            f"rows_read_from_source={self._rows_read_from_source})"
        )

    @property
    def status(self) -> CursorStatus:
        return self._status

    @property
    def window(self) -> Window:
        return self._window

    @property
    def rows_read_from_source(self) -> int:
        """Все строки, полученные от продюсера, включая пропущенные ради offset."""
        return self._rows_read_from_source

    def is_open(self) -> bool:
        return self._status == CursorStatus.OPEN

    def is_consumed(self) -> bool:
        return self._status == CursorStatus.CONSUMED

    def current_index(self) -> int:
        """
        Назначение:
            Индекс последней выданной строки в терминах всего источника.
            Осмыслен только после выдачи хотя бы одной строки.
        """
        iterator = self._issued or self._iterator
        return self._window.offset + iterator.yielded_index

    def iterator(self) -> "CursorIterator":
        """
        Назначение:
            Передаёт единственный итератор; повторный вызов - ошибка.
        """
        if self._iterator is None:
            raise IllegalCursorReuseError()
        self._issued, self._iterator = self._iterator, None
        return self._issued

    def close(self) -> None:
        """
        Назначение:
            Идемпотентно освобождает источник. Ошибки освобождения не пробрасываются.
        """
        if self._status.is_terminal:
            return
        self._release()
        self._status = CursorStatus.CLOSED
        if self._issued is not None:
            self._issued._drop_lookahead()
        self._log(logging.DEBUG, "cursor closed")

    def _release(self) -> None:
        try:
            self._source.release()
        except Exception as exc:
            self._log(logging.WARNING, f"source release failed: {exc}")

    def _on_exhaustion_or_limit(self) -> None:
        # release and mark consumed in one step; CLOSED is never observable here
        self._release()
        self._status = CursorStatus.CONSUMED
        self._log(
            logging.DEBUG,
            f"cursor consumed rows_read_from_source={self._rows_read_from_source}",
        )

    def _on_fetch_failure(self) -> None:
        self._release()
        self._status = CursorStatus.CLOSED

    def _limit_reached(self) -> bool:
        end = self._window.end
        return end is not None and self._rows_read_from_source >= end

    def _fetch_next_respecting_window(self) -> Row | None:
        if self._status.is_terminal:
            return None
        row = self._fetch_one_from_source()
        while row is not None and self._rows_read_from_source <= self._window.offset:
            row = self._fetch_one_from_source()
        return row

    def _fetch_one_from_source(self) -> Row | None:
        if self._status.is_terminal:
            return None

        self._status = CursorStatus.OPEN
        if self._limit_reached():
            self._on_exhaustion_or_limit()
            return None

        try:
            self._producer.advance_one(self._source, self._shape, self._slot)
        except SourceError:
            self._slot.take()
            self._on_fetch_failure()
            raise
        except Exception as exc:
            self._slot.take()
            self._on_fetch_failure()
            raise SourceError.wrap(exc) from exc

        row = self._slot.take()
        if row is not None:
            self._rows_read_from_source += 1

        if row is None or self._limit_reached():
            self._on_exhaustion_or_limit()
        return row

    def _log(self, level: int, message: str) -> None:
        self._logger.log(level, message, extra={"component": "cursor"})


class CursorIterator:
    """
    Назначение/ответственность:
        Единственный итератор курсора с упреждающим чтением (has_next/next).
    Контракт:
        - has_next() кэширует строку в lookahead.
        - next() отдаёт строку или бросает CursorExhaustedError.
        - remove() не поддерживается.
        - __next__ бросает StopIteration, чтобы работали for/list().
    """

    def __init__(self, cursor: Cursor) -> None:
        self._cursor = cursor
        self._lookahead: Row | None = None
        self.yielded_index = -1

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Row:
        if not self.has_next():
            raise StopIteration
        return self.next()

    def has_next(self) -> bool:
        if self._lookahead is None:
            self._lookahead = self._cursor._fetch_next_respecting_window()
        return self._lookahead is not None

    def next(self) -> Row:
        row = self._lookahead
        if row is None:
            row = self._cursor._fetch_next_respecting_window()
        if row is None:
            raise CursorExhaustedError()
        self._lookahead = None
        self.yielded_index += 1
        return row

    def remove(self) -> None:
        raise UnsupportedCursorOperationError()

    def _drop_lookahead(self) -> None:
        self._lookahead = None
