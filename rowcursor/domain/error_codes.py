from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок курсора, источников и CLI.
    """

    CURSOR_REUSE = "CURSOR_REUSE"
    CURSOR_EXHAUSTED = "CURSOR_EXHAUSTED"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    SOURCE_ERROR = "SOURCE_ERROR"
    CSV_FORMAT_ERROR = "CSV_FORMAT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    INVALID_JSON = "INVALID_JSON"
    INVALID_ITEMS_FORMAT = "INVALID_ITEMS_FORMAT"
    MAX_PAGES_EXCEEDED = "MAX_PAGES_EXCEEDED"
    API_ERROR = "API_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    @classmethod
    def from_status(cls, status_code: int | None) -> "ErrorCode":
        """
        Назначение:
            Подбор общего кода по HTTP-статусу.
        """
        if status_code == 401:
            return cls.UNAUTHORIZED
        if status_code == 403:
            return cls.FORBIDDEN
        return cls.HTTP_ERROR
