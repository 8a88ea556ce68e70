from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ReportMeta:
    """
    Назначение:
        Метаданные запуска команды.
    """

    run_id: str
    command: str
    started_at: str
    source: str | None = None
    finished_at: str | None = None
    duration_ms: int | None = None
    items_limit: int | None = None
    items_truncated: bool = False


@dataclass
class ReportSummary:
    """
    Назначение:
        Счётчики потоковой выборки.
    """

    rows_yielded: int = 0
    rows_read_from_source: int = 0
    last_index: int | None = None
    cursor_status: str | None = None
    window: dict[str, int | None] = field(default_factory=dict)
    errors_total: int = 0


@dataclass(frozen=True)
class ReportError:
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ReportEnvelope:
    """
    Назначение:
        Корневой объект отчёта.
    """

    status: str
    meta: ReportMeta
    summary: ReportSummary
    items: list[Any]
    errors: list[ReportError]
    context: dict[str, Any] = field(default_factory=dict)
