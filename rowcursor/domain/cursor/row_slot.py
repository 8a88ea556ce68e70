from __future__ import annotations

from typing import Any


class RowSlot:
    """
    Назначение/ответственность:
        Буфер на одну строку. Продюсер кладёт в него не более одной строки
        за вызов; заполненный слот означает "остановить выдачу на этот вызов".
    Инварианты:
        - Между вызовами выборки содержит не больше одной строки.
        - Курсор очищает слот сразу после чтения (take).
    """

    __slots__ = ("_result", "_filled")

    def __init__(self) -> None:
        self._result: Any = None
        self._filled = False

    @property
    def stopped(self) -> bool:
        return self._filled

    def put(self, row: Any) -> None:
        if row is None:
            raise ValueError("RowSlot cannot hold None as a row")
        if self._filled:
            raise ValueError("RowSlot already holds a row for this call")
        self._result = row
        self._filled = True

    def take(self) -> Any:
        """Возвращает строку (или None) и очищает слот."""
        row = self._result
        self._result = None
        self._filled = False
        return row
