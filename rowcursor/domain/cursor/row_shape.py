from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

Row = Any


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raw = str(value).strip().lower()
    if raw in ("1", "true", "yes", "y", "on"):
        return True
    if raw in ("0", "false", "no", "n", "off"):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


_TYPE_CASTS: dict[str, Callable[[Any], Any]] = {
    "int": int,
    "integer": int,
    "float": float,
    "real": float,
    "str": str,
    "text": str,
    "bool": _parse_bool,
    "boolean": _parse_bool,
}


@dataclass(frozen=True)
class RowShape:
    """
    Назначение/ответственность:
        Описание формы строки, которое курсор передаёт продюсеру без изменений.
        Продюсер использует его, чтобы материализовать "сырые" значения источника.
    Контракт:
        - columns: явный список колонок (проекция); None - брать колонки источника.
        - casts: приведения типов по имени колонки, None не приводится.
        - as_mapping: True -> dict, False -> tuple в порядке колонок.
    """

    name: str = "row"
    columns: tuple[str, ...] | None = None
    casts: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    as_mapping: bool = True

    @classmethod
    def from_type_names(
        cls,
        types: Mapping[str, str],
        name: str = "row",
        columns: Sequence[str] | None = None,
        as_mapping: bool = True,
    ) -> "RowShape":
        """
        Назначение:
            Строит RowShape по именам типов (int|float|str|bool и синонимы).
        """
        casts: dict[str, Callable[[Any], Any]] = {}
        for column, type_name in types.items():
            cast = _TYPE_CASTS.get((type_name or "").strip().lower())
            if cast is None:
                raise ValueError(f"Unsupported column type '{type_name}' for column '{column}'")
            casts[column] = cast
        return cls(
            name=name,
            columns=tuple(columns) if columns is not None else None,
            casts=casts,
            as_mapping=as_mapping,
        )

    def materialize(self, values: Mapping[str, Any] | Sequence[Any], columns: Sequence[str] | None = None) -> Row:
        """
        Назначение:
            Превращает значения источника в строку заданной формы.

        Входные данные:
            values: Mapping | Sequence
                Именованные значения либо позиционные.
            columns: Sequence[str] | None
                Имена колонок источника для позиционных значений.

        Выходные данные:
            dict | tuple; скалярное значение возвращается как есть.
        """
        if isinstance(values, (str, bytes)) or not hasattr(values, "__iter__"):
            return values
        if isinstance(values, Mapping):
            record = dict(values)
        else:
            items = list(values)
            names = list(columns) if columns is not None else [f"col_{idx}" for idx in range(len(items))]
            if len(names) != len(items):
                raise ValueError(f"Row has {len(items)} values for {len(names)} columns")
            record = dict(zip(names, items))

        if self.columns is not None:
            record = {name: record.get(name) for name in self.columns}

        for name, cast in self.casts.items():
            value = record.get(name)
            if value is not None:
                record[name] = cast(value)

        if self.as_mapping:
            return record
        return tuple(record.values())


DEFAULT_ROW_SHAPE = RowShape()
