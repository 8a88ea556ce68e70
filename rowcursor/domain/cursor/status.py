from __future__ import annotations

from enum import Enum


class CursorStatus(str, Enum):
    """
    Назначение:
        Состояние жизненного цикла курсора.
    Значения:
        CREATED  - ни одной попытки чтения ещё не было.
        OPEN     - чтение из источника началось.
        CLOSED   - источник освобождён, строки могли быть выбраны не полностью.
        CONSUMED - источник освобождён и логическая последовательность исчерпана.
    """

    CREATED = "created"
    OPEN = "open"
    CLOSED = "closed"
    CONSUMED = "consumed"

    @property
    def is_terminal(self) -> bool:
        return self in (CursorStatus.CLOSED, CursorStatus.CONSUMED)
