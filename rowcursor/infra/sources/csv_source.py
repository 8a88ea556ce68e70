from __future__ import annotations

import csv

from rowcursor.domain.cursor.row_shape import RowShape
from rowcursor.domain.cursor.row_slot import RowSlot
from rowcursor.domain.ports.sources import RowProducerProtocol, SourceHandleProtocol
from rowcursor.infra.sources.csv_utils import CsvFormatError, parseNull


class CsvSourceHandle(SourceHandleProtocol):
    """
    Назначение/ответственность:
        Открытый CSV-файл, читаемый построчно.
    Контракт:
        - Файл открывается в конструкторе и закрывается в release().
        - С заголовком: колонки из первой строки, иначе col_0..col_N.
        - line_no - номер последней прочитанной физической строки CSV.
    """

    def __init__(self, path: str, has_header: bool, delimiter: str = ",", encoding: str = "utf-8-sig") -> None:
        self.path = path
        self.has_header = has_header
        self.file = open(path, "r", encoding=encoding, newline="")
        self.reader = csv.reader(self.file, delimiter=delimiter)
        self.columns: list[str] | None = None
        self.line_no = 0
        if has_header:
            try:
                header = next(self.reader, None)
            except csv.Error:
                self.file.close()
                raise
            if not header:
                self.file.close()
                raise CsvFormatError("Missing header in source CSV")
            self.line_no = self.reader.line_num
            self.columns = [name.strip() for name in header]

    def read_values(self) -> list[str] | None:
        """Следующая непустая строка CSV или None в конце файла."""
        for row in self.reader:
            self.line_no = self.reader.line_num
            if not row:
                continue
            return row
        return None

    def release(self) -> None:
        if not self.file.closed:
            self.file.close()


class CsvRowProducer(RowProducerProtocol):
    """
    Назначение/ответственность:
        Продюсер строк CSV: одна запись за вызов, NULL/пустые значения -> None.
    Ошибки:
        CsvFormatError при несовпадении количества колонок.
    """

    def advance_one(self, source: CsvSourceHandle, shape: RowShape, slot: RowSlot) -> None:
        values = source.read_values()
        if values is None:
            return
        if source.columns is None:
            source.columns = [f"col_{idx}" for idx in range(len(values))]
        if len(values) != len(source.columns):
            raise CsvFormatError(
                f"Invalid column count at line {source.line_no}: expected {len(source.columns)}, got {len(values)}"
            )
        slot.put(shape.materialize([parseNull(value) for value in values], source.columns))
