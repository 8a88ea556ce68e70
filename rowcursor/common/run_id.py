from __future__ import annotations

import re
import uuid

_RUN_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$")


def generate_run_id() -> str:
    """
    Назначение:
        Сгенерировать run_id для запуска команды (UUID4).
    """
    return str(uuid.uuid4())


def is_valid_run_id(value: str) -> bool:
    """
    Назначение:
        run_id попадает в имена файлов логов/отчётов, поэтому допускаются
        только буквы, цифры и ._- (до 64 символов).
    """
    return bool(_RUN_ID_RE.match(value or ""))
