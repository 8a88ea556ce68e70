from __future__ import annotations

import csv
import logging
import sqlite3
from typing import Any, Iterable, Sequence

from rowcursor.domain.cursor import DEFAULT_ROW_SHAPE, DEFAULT_WINDOW, Cursor, RowShape, Window
from rowcursor.domain.exceptions import SourceError
from rowcursor.infra.http.api_client import ApiClient
from rowcursor.infra.sources.api_source import ApiPagedSource, ApiRowProducer
from rowcursor.infra.sources.csv_source import CsvRowProducer, CsvSourceHandle
from rowcursor.infra.sources.csv_utils import CsvFormatError
from rowcursor.infra.sources.iterable_source import IterableRowProducer, IterableSource
from rowcursor.infra.sources.sqlite_source import SqliteRowProducer, SqliteSourceHandle
from rowcursor.infra.sqlite.sqlite_engine import SqliteEngine


class QueryExecutor:
    """
    Назначение/ответственность:
        Слой выполнения запросов: открывает источник и собирает по одному
        Cursor на каждый потоковый результат. Приложению отдаётся курсор,
        а не итератор.
    Ошибки:
        Неудачное открытие источника -> SourceError (курсор не создаётся).
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger

    def query_sqlite(
        self,
        engine: SqliteEngine,
        sql: str,
        params: Sequence[Any] | dict | None = None,
        window: Window = DEFAULT_WINDOW,
        shape: RowShape = DEFAULT_ROW_SHAPE,
        owns_connection: bool = False,
    ) -> Cursor:
        try:
            cur = engine.open_cursor(sql, params)
        except sqlite3.Error as exc:
            raise SourceError.wrap(exc, f"Failed to execute query: {exc}") from exc
        source = SqliteSourceHandle(cur, connection=engine.conn, owns_connection=owns_connection)
        return self._build(SqliteRowProducer(), source, shape, window)

    def query_csv(
        self,
        path: str,
        has_header: bool = True,
        window: Window = DEFAULT_WINDOW,
        shape: RowShape = DEFAULT_ROW_SHAPE,
    ) -> Cursor:
        try:
            source = CsvSourceHandle(path, has_header)
        except (OSError, csv.Error, CsvFormatError) as exc:
            raise SourceError.wrap(exc, f"Failed to open CSV: {exc}") from exc
        return self._build(CsvRowProducer(), source, shape, window)

    def query_api(
        self,
        client: ApiClient,
        path: str,
        page_size: int = 100,
        max_pages: int | None = None,
        window: Window = DEFAULT_WINDOW,
        shape: RowShape = DEFAULT_ROW_SHAPE,
        params: dict[str, Any] | None = None,
        owns_client: bool = False,
    ) -> Cursor:
        source = ApiPagedSource(
            client,
            path,
            page_size=page_size,
            max_pages=max_pages,
            params=params,
            owns_client=owns_client,
        )
        return self._build(ApiRowProducer(), source, shape, window)

    def query_iterable(
        self,
        rows: Iterable[Any],
        window: Window = DEFAULT_WINDOW,
        shape: RowShape = DEFAULT_ROW_SHAPE,
        columns: Sequence[str] | None = None,
    ) -> Cursor:
        return self._build(IterableRowProducer(), IterableSource(rows, columns), shape, window)

    def _build(self, producer, source, shape: RowShape, window: Window) -> Cursor:
        return Cursor(producer, source, shape=shape, window=window, logger=self.logger)
