from __future__ import annotations

from rowcursor.domain.error_codes import ErrorCode


class CsvFormatError(Exception):
    """
    Назначение:
        Ошибка критического формата CSV (количество колонок и т.п.).
    """

    code = ErrorCode.CSV_FORMAT_ERROR.value


def parseNull(value: str | None) -> str | None:
    """
    Назначение:
        Преобразует пустые/NULL значения в None и тримит строки.
    """
    if value is None:
        return None
    trimmed = value.strip()
    if trimmed == "" or trimmed.lower() == "null":
        return None
    return trimmed
