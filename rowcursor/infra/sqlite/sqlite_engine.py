from __future__ import annotations

import sqlite3
from typing import Sequence


class SqliteEngine:
    """
    Назначение/ответственность:
        Тонкая обёртка над sqlite3.Connection: открывает курсоры под потоковое
        чтение и закрывает соединение.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def open_cursor(self, sql: str, params: Sequence | dict | None = None) -> sqlite3.Cursor:
        """
        Назначение:
            Открывает отдельный sqlite3.Cursor под потоковое чтение результата.
        """
        cur = self.conn.cursor()
        try:
            if params is None:
                cur.execute(sql)
            else:
                cur.execute(sql, params)
        except sqlite3.Error:
            cur.close()
            raise
        return cur

    def close(self) -> None:
        self.conn.close()
