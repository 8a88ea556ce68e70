from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Window:
    """
    Назначение:
        Неизменяемое окно offset/limit поверх логической последовательности строк.
    Инварианты:
        - offset >= 0.
        - limit >= 0 либо None (без ограничения).
    """

    offset: int = 0
    limit: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.offset, bool) or not isinstance(self.offset, int) or self.offset < 0:
            raise ValueError(f"Window offset must be a non-negative integer, got {self.offset!r}")
        if self.limit is not None and (
            isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 0
        ):
            raise ValueError(f"Window limit must be a non-negative integer or None, got {self.limit!r}")

    @property
    def is_bounded(self) -> bool:
        return self.limit is not None

    @property
    def end(self) -> int | None:
        """Количество строк источника, после которого окно исчерпано."""
        if self.limit is None:
            return None
        return self.offset + self.limit

    def to_dict(self) -> dict[str, int | None]:
        return {"offset": self.offset, "limit": self.limit}


DEFAULT_WINDOW = Window()
