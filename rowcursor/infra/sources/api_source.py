from __future__ import annotations

from collections import deque
from typing import Any

from rowcursor.domain.cursor.row_shape import RowShape
from rowcursor.domain.cursor.row_slot import RowSlot
from rowcursor.domain.error_codes import ErrorCode
from rowcursor.domain.ports.sources import RowProducerProtocol, SourceHandleProtocol
from rowcursor.infra.http.api_client import ApiClient, ApiError


class ApiPagedSource(SourceHandleProtocol):
    """
    Назначение/ответственность:
        Постраничный REST-источник: страницы запрашиваются лениво,
        только когда буфер текущей страницы исчерпан.
    Контракт:
        - Конец данных: пустая страница либо страница короче page_size.
        - max_pages ограничивает число запросов (ApiError MAX_PAGES_EXCEEDED).
        - release() закрывает клиента, если owns_client.
    """

    def __init__(
        self,
        client: ApiClient,
        path: str,
        page_size: int,
        max_pages: int | None = None,
        params: dict[str, Any] | None = None,
        owns_client: bool = False,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.client = client
        self.path = path
        self.page_size = page_size
        self.max_pages = max_pages
        self.params = params or {}
        self.owns_client = owns_client
        self.pages_fetched = 0
        self._buffer: deque[Any] = deque()
        self._last_page = False
        self.released = False

    def next_item(self) -> Any | None:
        if not self._buffer and not self._last_page:
            self._fetch_page()
        if not self._buffer:
            return None
        return self._buffer.popleft()

    def _fetch_page(self) -> None:
        page = self.pages_fetched + 1
        if self.max_pages is not None and page > self.max_pages:
            raise ApiError(
                "max pages exceeded",
                code=ErrorCode.MAX_PAGES_EXCEEDED.value,
                status_code=None,
                retryable=False,
            )
        items = self.client.getPage(self.path, page, self.page_size, self.params)
        self.pages_fetched = page
        if len(items) < self.page_size:
            self._last_page = True
        self._buffer.extend(item for item in items if item is not None)

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self._buffer.clear()
        if self.owns_client:
            self.client.close()


class ApiRowProducer(RowProducerProtocol):
    """Продюсер строк REST-источника: один item за вызов."""

    def advance_one(self, source: ApiPagedSource, shape: RowShape, slot: RowSlot) -> None:
        item = source.next_item()
        if item is None:
            return
        slot.put(shape.materialize(item))
