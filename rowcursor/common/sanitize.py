from __future__ import annotations

from typing import Any


def maskSecret(value: str | None) -> str | None:
    """
    Назначение:
        Маскирует секреты для безопасного вывода в stdout/logs.

    Входные данные:
        value: str | None
            Исходное значение (например, пароль API-источника).

    Выходные данные:
        str | None
            Если value задано - возвращает '***', иначе None.
    """
    if value is None:
        return None
    return "***"


def truncateText(value: str | None, limit: int = 500) -> str | None:
    """
    Назначение:
        Ограничивает длину текста, чтобы не раздувать логи/отчёты.
    """
    if value is None:
        return None
    if len(value) <= limit:
        return value
    suffix = "..." if limit > 3 else ""
    head = limit - len(suffix)
    return value[:head] + suffix


def maskSecretsInObject(
    obj: Any,
    sensitive_keys: tuple[str, ...] = (
        "password",
        "token",
        "authorization",
        "api_key",
        "secret",
    ),
) -> Any:
    """
    Назначение:
        Рекурсивно маскирует значения по заданным ключам в строках,
        которые попадают в отчёт (dict/list/tuple).
    """
    sensitive = {key.lower() for key in sensitive_keys}
    if isinstance(obj, dict):
        masked: dict[str, Any] = {}
        for k, v in obj.items():
            if str(k).lower() in sensitive:
                masked[k] = maskSecret(str(v) if v is not None else None)
            else:
                masked[k] = maskSecretsInObject(v, sensitive_keys)
        return masked
    if isinstance(obj, (list, tuple)):
        return [maskSecretsInObject(item, sensitive_keys) for item in obj]
    return obj
