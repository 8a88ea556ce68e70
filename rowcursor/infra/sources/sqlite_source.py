from __future__ import annotations

import sqlite3

from rowcursor.domain.cursor.row_shape import RowShape
from rowcursor.domain.ports.sources import RowContextProtocol, RowHandlerProtocol, SourceHandleProtocol
from rowcursor.infra.sources.push_adapter import PushRowProducer


class SqliteSourceHandle(SourceHandleProtocol):
    """
    Назначение/ответственность:
        Открытый результат запроса SQLite (sqlite3.Cursor).
    Контракт:
        - release() закрывает курсор и, если owns_connection, соединение.
        - Ошибки закрытия не пробрасываются.
    """

    def __init__(
        self,
        cursor: sqlite3.Cursor,
        connection: sqlite3.Connection | None = None,
        owns_connection: bool = False,
    ) -> None:
        self.cursor = cursor
        self.connection = connection
        self.owns_connection = owns_connection
        self.columns = [col[0] for col in (cursor.description or [])]
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            self.cursor.close()
        except sqlite3.Error:
            pass
        if self.owns_connection and self.connection is not None:
            try:
                self.connection.close()
            except sqlite3.Error:
                pass


class SqliteRowHandler(RowHandlerProtocol):
    """
    Назначение/ответственность:
        Push-обработчик строк SQLite: читает fetchone() и отдаёт строки
        в контекст, пока тот не остановит обход.
    """

    def handle_rows(self, source: SqliteSourceHandle, shape: RowShape, context: RowContextProtocol) -> None:
        while not context.stopped:
            raw = source.cursor.fetchone()
            if raw is None:
                return
            context.emit(shape.materialize(tuple(raw), source.columns))


class SqliteRowProducer(PushRowProducer):
    """Продюсер строк SQLite поверх push-адаптера."""

    def __init__(self) -> None:
        super().__init__(SqliteRowHandler())
