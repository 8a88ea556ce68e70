from __future__ import annotations

import sqlite3
from pathlib import Path


def openDatabase(dbPath: str, readOnly: bool = False) -> sqlite3.Connection:
    """
    Открывает SQLite БД для потокового чтения с нужными PRAGMA/timeout.
    В режиме readOnly файл должен существовать.
    """
    if readOnly:
        uri = f"{Path(dbPath).resolve().as_uri()}?mode=ro"
        conn = sqlite3.connect(uri, uri=True, timeout=5.0)
    else:
        Path(dbPath).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(dbPath, timeout=5.0)
    conn.execute("PRAGMA busy_timeout = 5000")
    return conn
