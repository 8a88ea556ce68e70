from __future__ import annotations

from typing import Any

from rowcursor.domain.error_codes import ErrorCode
from rowcursor.errors import AppError


class CursorError(AppError):
    """
    Назначение:
        Базовая ошибка подсистемы курсоров.
    Контракт:
        - category всегда "cursor" (кроме SourceError).
        - code берётся из ErrorCode.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        category: str = "cursor",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            category=category,
            code=code.value,
            message=message,
            retryable=False,
            details=details or {},
        )


class IllegalCursorReuseError(CursorError):
    """
    Назначение:
        Повторный запрос итератора у курсора, который уже выдал итератор.
        Сигнал ошибки программиста, локально не восстанавливается.
    """

    def __init__(self, message: str = "Cannot open more than one iterator on a Cursor"):
        super().__init__(message, ErrorCode.CURSOR_REUSE)


class CursorExhaustedError(CursorError):
    """
    Назначение:
        next() вызван, когда строк больше нет (не проверили has_next()).
    """

    def __init__(self, message: str = "No more rows in Cursor"):
        super().__init__(message, ErrorCode.CURSOR_EXHAUSTED)


class UnsupportedCursorOperationError(CursorError):
    """Удаление/модификация во время итерации не поддерживается."""

    def __init__(self, message: str = "Cannot remove element from Cursor"):
        super().__init__(message, ErrorCode.UNSUPPORTED_OPERATION)


class SourceError(CursorError):
    """
    Назначение:
        Фатальная ошибка источника строк во время выборки.
    Контракт:
        - Никогда не повторяется автоматически: курсор не умеет "переиграть"
          частично прочитанный поток.
        - Исходное исключение доступно через __cause__ (raise ... from exc).
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SOURCE_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, category="source", details=details)

    @classmethod
    def wrap(cls, exc: BaseException, message: str | None = None) -> "SourceError":
        """
        Назначение:
            Оборачивает исключение источника, сохраняя его код, если он есть.
        """
        code = ErrorCode.SOURCE_ERROR
        raw_code = getattr(exc, "code", None)
        if isinstance(raw_code, str) and raw_code in ErrorCode.__members__:
            code = ErrorCode(raw_code)
        details = {"cause": type(exc).__name__}
        return cls(message or f"Row source failed: {exc}", code=code, details=details)


__all__ = [
    "CursorError",
    "IllegalCursorReuseError",
    "CursorExhaustedError",
    "UnsupportedCursorOperationError",
    "SourceError",
]
