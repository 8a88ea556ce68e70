from __future__ import annotations

from dataclasses import asdict
from typing import Any

from rowcursor.common.time import getNowIso
from rowcursor.domain.reporting.models import ReportEnvelope, ReportError, ReportMeta, ReportSummary


class ReportCollector:
    """
    Назначение/ответственность:
        Единый сборщик отчётов для всех команд выборки.
    """

    def __init__(self, run_id: str, command: str, started_at: str | None = None) -> None:
        self.meta = ReportMeta(
            run_id=run_id,
            command=command,
            started_at=started_at or getNowIso(),
        )
        self.summary = ReportSummary()
        self.items: list[Any] = []
        self.errors: list[ReportError] = []
        self.context: dict[str, Any] = {}
        self.status: str | None = None

    def set_context(self, name: str, value: dict[str, Any]) -> None:
        self.context[name] = value

    def add_item(self, payload: Any) -> None:
        limit = self.meta.items_limit
        if limit is not None and len(self.items) >= limit:
            self.meta.items_truncated = True
            return
        self.items.append(payload)

    def add_error(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        self.errors.append(ReportError(code=code, message=message, details=details or {}))
        self.summary.errors_total += 1

    def finish(self, finished_at: str | None = None, duration_ms: int | None = None) -> None:
        self.meta.finished_at = finished_at or getNowIso()
        self.meta.duration_ms = duration_ms
        if self.status is None:
            self.status = self._derive_status()

    def build(self) -> ReportEnvelope:
        return ReportEnvelope(
            status=self.status or self._derive_status(),
            meta=self.meta,
            summary=self.summary,
            items=self.items,
            errors=self.errors,
            context=self.context,
        )

    def _derive_status(self) -> str:
        if self.summary.errors_total == 0:
            return "SUCCESS"
        return "FAILED"


def asdict_report(envelope: ReportEnvelope) -> dict[str, Any]:
    """
    Назначение:
        Сериализация отчёта в dict для json.dump.
    """
    return {
        "status": envelope.status,
        "meta": asdict(envelope.meta),
        "summary": asdict(envelope.summary),
        "items": list(envelope.items),
        "errors": [asdict(err) for err in envelope.errors],
        "context": envelope.context,
    }
