from __future__ import annotations

from typing import Any

from rowcursor.domain.cursor.row_shape import RowShape
from rowcursor.domain.cursor.row_slot import RowSlot
from rowcursor.domain.ports.sources import RowHandlerProtocol, RowProducerProtocol


class RowContext:
    """
    Назначение/ответственность:
        Контекст одного вызова push-обработчика: принимает первую строку
        в RowSlot и с этого момента сообщает обработчику "стоп".
    """

    def __init__(self, slot: RowSlot) -> None:
        self._slot = slot
        self.result_count = 0

    @property
    def stopped(self) -> bool:
        return self._slot.stopped

    def emit(self, row: Any) -> None:
        self._slot.put(row)
        self.result_count += 1


class PushRowProducer(RowProducerProtocol):
    """
    Назначение/ответственность:
        Адаптер push -> pull: превращает обработчик, который "обходит все строки
        и отдаёт их в callback", в продюсер ровно одной строки за вызов.
    Контракт:
        - Каждый advance_one создаёт новый RowContext поверх слота курсора.
        - Позиция источника хранится в самом источнике, поэтому следующий
          вызов продолжает с того места, где остановился предыдущий.
    """

    def __init__(self, handler: RowHandlerProtocol) -> None:
        self.handler = handler

    def advance_one(self, source: Any, shape: RowShape, slot: RowSlot) -> None:
        context = RowContext(slot)
        self.handler.handle_rows(source, shape, context)
