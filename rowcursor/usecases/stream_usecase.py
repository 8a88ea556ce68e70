from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from rowcursor.common.sanitize import maskSecretsInObject
from rowcursor.domain.cursor import Cursor, CursorStatus
from rowcursor.domain.reporting.collector import ReportCollector
from rowcursor.infra.logging.setup import logEvent


@dataclass(frozen=True)
class StreamResult:
    """
    Назначение:
        Итог выборки одного курсора.
    """

    rows_yielded: int
    rows_read_from_source: int
    last_index: int | None
    status: CursorStatus


class StreamUseCase:
    """
    Назначение/ответственность:
        Use-case потоковой выборки: вычитывает курсор до конца, отдаёт строки
        в sink и заполняет отчёт.
    Гарантии:
        - Курсор закрывается на любом пути выхода (with cursor).
        - SourceError пробрасывается наружу уже после освобождения источника.
    """

    def __init__(self, report_items_limit: int) -> None:
        self.report_items_limit = report_items_limit

    def run(
        self,
        cursor: Cursor,
        sink: Callable[[Any], None],
        logger: logging.Logger,
        run_id: str,
        report: ReportCollector,
    ) -> StreamResult:
        report.meta.items_limit = self.report_items_limit
        report.summary.window = cursor.window.to_dict()

        rows_yielded = 0
        last_index: int | None = None
        try:
            with cursor:
                for row in cursor:
                    sink(row)
                    rows_yielded += 1
                    last_index = cursor.current_index()
                    report.add_item(maskSecretsInObject(row))
        finally:
            report.summary.rows_yielded = rows_yielded
            report.summary.rows_read_from_source = cursor.rows_read_from_source
            report.summary.last_index = last_index
            report.summary.cursor_status = cursor.status.value
            logEvent(
                logger,
                logging.INFO,
                run_id,
                "stream",
                f"stream finished rows_yielded={rows_yielded} "
                f"rows_read_from_source={cursor.rows_read_from_source} status={cursor.status.value}",
            )

        return StreamResult(
            rows_yielded=rows_yielded,
            rows_read_from_source=cursor.rows_read_from_source,
            last_index=last_index,
            status=cursor.status,
        )
