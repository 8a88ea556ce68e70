from rowcursor.infra.sources.api_source import ApiPagedSource, ApiRowProducer
from rowcursor.infra.sources.csv_source import CsvRowProducer, CsvSourceHandle
from rowcursor.infra.sources.iterable_source import IterableRowProducer, IterableSource
from rowcursor.infra.sources.push_adapter import PushRowProducer, RowContext
from rowcursor.infra.sources.sqlite_source import SqliteRowHandler, SqliteRowProducer, SqliteSourceHandle

__all__ = [
    "ApiPagedSource",
    "ApiRowProducer",
    "CsvRowProducer",
    "CsvSourceHandle",
    "IterableRowProducer",
    "IterableSource",
    "PushRowProducer",
    "RowContext",
    "SqliteRowHandler",
    "SqliteRowProducer",
    "SqliteSourceHandle",
]
