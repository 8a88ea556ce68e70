from __future__ import annotations

from typing import Any, Iterable, Sequence

from rowcursor.domain.cursor.row_shape import RowShape
from rowcursor.domain.cursor.row_slot import RowSlot
from rowcursor.domain.ports.sources import RowProducerProtocol, SourceHandleProtocol


class IterableSource(SourceHandleProtocol):
    """
    Назначение/ответственность:
        Источник поверх произвольного iterable (список, генератор).
    """

    def __init__(self, rows: Iterable[Any], columns: Sequence[str] | None = None) -> None:
        self.iterator = iter(rows)
        self.columns = list(columns) if columns is not None else None
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        close = getattr(self.iterator, "close", None)
        if callable(close):
            close()


class IterableRowProducer(RowProducerProtocol):
    """Pull-продюсер: одна строка из iterable за вызов."""

    def advance_one(self, source: IterableSource, shape: RowShape, slot: RowSlot) -> None:
        try:
            raw = next(source.iterator)
        except StopIteration:
            return
        slot.put(shape.materialize(raw, source.columns))
