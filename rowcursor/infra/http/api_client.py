from __future__ import annotations

import time
from typing import Any

import httpx

from rowcursor.common.sanitize import truncateText
from rowcursor.domain.error_codes import ErrorCode
from rowcursor.errors import AppError


class ApiError(AppError):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body_snippet: str | None = None,
        retryable: bool = False,
        details: dict | None = None,
        code: str | None = None,
    ):
        """
        Назначение:
            Исключение для ошибок HTTP/API уровня ApiClient.
        Контракт:
            - code: строковый код (HTTP_ERROR, UNAUTHORIZED, FORBIDDEN, NETWORK_ERROR и т.п.).
            - status_code/body_snippet используются для диагностики.
        """
        super().__init__(
            category="api",
            code=code or (ErrorCode.from_status(status_code).value if status_code else ErrorCode.API_ERROR.value),
            message=message,
            retryable=retryable,
            details=details or {},
        )
        self.status_code = status_code
        self.body_snippet = body_snippet


class ApiClient:
    def __init__(
        self,
        baseUrl: str,
        username: str | None = None,
        password: str | None = None,
        timeoutSeconds: float = 20.0,
        tlsSkipVerify: bool = False,
        caFile: str | None = None,
        retries: int = 3,
        retryBackoffSeconds: float = 0.5,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Назначение:
            JSON-клиент постраничных REST-источников с простой политикой ретраев.
        Контракт:
            - username/password (если заданы) уходят как Basic auth.
            - retries/retryBackoffSeconds управляют повторными попытками.
        """
        verify: bool | str = True
        if tlsSkipVerify:
            verify = False
        elif caFile:
            verify = caFile

        self.baseUrl = baseUrl.rstrip("/")
        self.retries = retries
        self.retryBackoffSeconds = retryBackoffSeconds
        self.retry_attempts = 0

        auth = (username, password or "") if username else None
        self.client = httpx.Client(
            base_url=self.baseUrl,
            timeout=timeoutSeconds,
            verify=verify,
            transport=transport,
            auth=auth,
        )

    def getRetryAttempts(self) -> int:
        """Возвращает количество выполненных повторных попыток."""
        return self.retry_attempts

    def close(self) -> None:
        self.client.close()

    def _should_retry(self, resp: httpx.Response) -> bool:
        """Решает, стоит ли повторить запрос (429 или 5xx)."""
        if resp.status_code == 429:
            return True
        if 500 <= resp.status_code <= 599:
            return True
        return False

    def _sleep_backoff(self, attempt: int) -> None:
        """Задержка с экспоненциальным ростом для ретраев."""
        delay = self.retryBackoffSeconds * (2 ** attempt)
        time.sleep(delay)

    def _request_with_retry(self, path: str, params: dict[str, Any]) -> httpx.Response:
        """GET с ретраями по 429/5xx и сетевым ошибкам, иначе ApiError."""
        attempt = 0
        while True:
            try:
                resp = self.client.get(path, params=params, headers={"accept": "application/json"})
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if attempt >= self.retries:
                    raise ApiError(
                        "Network error",
                        status_code=None,
                        retryable=False,
                        code=ErrorCode.NETWORK_ERROR.value,
                    ) from exc
                self.retry_attempts += 1
                self._sleep_backoff(attempt)
                attempt += 1
                continue

            if resp.status_code == 200:
                return resp

            if self._should_retry(resp) and attempt < self.retries:
                self.retry_attempts += 1
                self._sleep_backoff(attempt)
                attempt += 1
                continue

            body_snippet = truncateText(resp.text, 200) if resp.text else None
            raise ApiError(
                f"HTTP {resp.status_code}",
                status_code=resp.status_code,
                body_snippet=body_snippet,
                retryable=self._should_retry(resp),
                details={"body_snippet": body_snippet},
            )

    def getJson(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET JSON с ретраями, парсит ответ или бросает ApiError."""
        params = params or {}
        resp = self._request_with_retry(path, params)
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiError(
                "Invalid JSON response",
                status_code=resp.status_code,
                retryable=False,
                code=ErrorCode.INVALID_JSON.value,
            ) from exc

    def _extract_items(self, data: Any) -> list[Any]:
        """Пытается вытащить массив items из разных возможных ключей."""
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ("items", "data", "rows", "result", "results"):
                if key in data and isinstance(data[key], list):
                    return data[key]
        raise ApiError(
            "Unexpected response format: no items array",
            code=ErrorCode.INVALID_ITEMS_FORMAT.value,
            retryable=False,
        )

    def getPage(self, path: str, page: int, pageSize: int, params: dict[str, Any] | None = None) -> list[Any]:
        """
        Назначение:
            Одна страница items (page нумеруется с 1).
        """
        query = dict(params or {})
        query.update({"page": page, "rows": pageSize})
        return self._extract_items(self.getJson(path, params=query))
