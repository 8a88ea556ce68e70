from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from rowcursor.domain.cursor.row_shape import RowShape
    from rowcursor.domain.cursor.row_slot import RowSlot


class SourceHandleProtocol(Protocol):
    """
    Назначение/ответственность:
        Открытый ресурс источника строк (курсор БД, файл, HTTP-клиент).
        Принадлежит курсору с момента создания до освобождения.
    """

    def release(self) -> None:
        """
        Контракт:
            Освобождает ресурс по принципу best-effort, исключений не бросает.
        """
        ...


class RowProducerProtocol(Protocol):
    """
    Назначение/ответственность:
        Продюсер строк: продвигает источник ровно на одну строку за вызов.
    Взаимодействия:
        Вызывается только курсором, позиция источника сохраняется между вызовами.
    """

    def advance_one(self, source: Any, shape: RowShape, slot: RowSlot) -> None:
        """
        Контракт:
            - Кладёт в slot не более одной материализованной строки.
            - Пустой slot после вызова означает исчерпание источника.
            - Ошибки источника пробрасываются (курсор обернёт их в SourceError).
        """
        ...


class RowHandlerProtocol(Protocol):
    """
    Назначение/ответственность:
        Push-обработчик: обходит строки источника и отдаёт их в контекст,
        пока контекст не попросит остановиться.
    """

    def handle_rows(self, source: Any, shape: RowShape, context: "RowContextProtocol") -> None:
        ...


class RowContextProtocol(Protocol):
    @property
    def stopped(self) -> bool: ...

    def emit(self, row: Any) -> None: ...
