from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Callable

import typer

from rowcursor.common.run_id import generate_run_id, is_valid_run_id
from rowcursor.common.sanitize import maskSecret
from rowcursor.common.time import getDurationMs
from rowcursor.config import Settings, loadSettings
from rowcursor.domain.cursor import Cursor, RowShape, Window
from rowcursor.domain.exceptions import SourceError
from rowcursor.infra.artifacts.report_writer import createEmptyReport, finalizeReport, writeReportJson
from rowcursor.infra.http.api_client import ApiClient
from rowcursor.infra.logging.setup import (
    closeCommandLogger,
    createCommandLogger,
    logEvent,
)
from rowcursor.infra.sqlite.db import openDatabase
from rowcursor.infra.sqlite.sqlite_engine import SqliteEngine
from rowcursor.usecases.query_executor import QueryExecutor
from rowcursor.usecases.stream_usecase import StreamUseCase

app = typer.Typer(no_args_is_help=True, add_completion=False)


def ensureDir(path: str) -> None:
    """Создаёт каталог, если он отсутствует."""
    Path(path).mkdir(parents=True, exist_ok=True)


def requireFile(path: str | None, option: str) -> None:
    """
    Назначение:
        Проверка наличия входного файла (БД или CSV).

    Поведение:
        - Если путь не задан или файл не существует - typer.Exit(code=2).
    """
    if not path:
        typer.echo(f"ERROR: {option} is required", err=True)
        raise typer.Exit(code=2)

    p = Path(path)
    if not p.exists() or not p.is_file():
        typer.echo(f"ERROR: file not found: {path}", err=True)
        raise typer.Exit(code=2)


def requireApi(settings: Settings) -> None:
    """
    Назначение:
        Проверяет наличие параметров API для команды api.

    Поведение:
        - Если чего-то не хватает - exit code 2.
    """
    missing = []
    if not settings.host:
        missing.append("host")
    if not settings.port:
        missing.append("port")

    if missing:
        typer.echo(f"ERROR: missing API settings: {', '.join(missing)}", err=True)
        raise typer.Exit(code=2)


def parseColumnTypes(columnTypes: list[str] | None) -> dict[str, str]:
    """
    Назначение:
        Разбирает повторяемую опцию --column-type name=type.
    """
    result: dict[str, str] = {}
    for raw in columnTypes or []:
        if "=" not in raw:
            raise ValueError(f"Invalid --column-type '{raw}', expected name=type")
        name, type_name = raw.split("=", 1)
        name = name.strip()
        if not name:
            raise ValueError(f"Invalid --column-type '{raw}', empty column name")
        result[name] = type_name.strip()
    return result


def printRunHeader(
    logger: logging.Logger,
    runId: str,
    command: str,
    settings: Settings,
    sources: list[str],
    window: Window,
) -> None:
    """Печатает в stderr и пишет в лог безопасную сводку параметров запуска (без секретов)."""
    header = (
        f"run_id={runId} command={command} "
        f"offset={window.offset} limit={window.limit} "
        f"api_username={settings.api_username} api_password={maskSecret(settings.api_password)} "
        f"sources={sources} log_level={settings.log_level}"
    )
    typer.echo(header, err=True)
    logEvent(logger, logging.INFO, runId, "core", header)


def buildWindow(settings: Settings, offset: int | None, limit: int | None) -> Window:
    return Window(
        offset=offset if offset is not None else settings.default_offset,
        limit=limit if limit is not None else settings.default_limit,
    )


def runWithReport(
    ctx: typer.Context,
    commandName: str,
    sourceRef: str | None,
    requiredFile: tuple[str | None, str] | None,
    requiresApiAccess: bool,
    window: Window,
    runner: Callable[[logging.Logger, Any], int],
) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога
        - создаёт report.json skeleton
        - валидирует обязательные входы (файл/API)
        - гарантирует запись отчёта в finally
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    startMonotonic = time.monotonic()

    logger, logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
    )

    report = createEmptyReport(runId=runId, command=commandName, configSources=sources)
    report.meta.source = sourceRef

    exitCode: int | None = None

    try:
        logEvent(logger, logging.INFO, runId, "core", "Command started")
        printRunHeader(logger, runId, commandName, settings, sources, window)

        if requiresApiAccess:
            try:
                requireApi(settings)
            except typer.Exit:
                logEvent(logger, logging.ERROR, runId, "config", "Missing API settings")
                report.add_error("CONFIG_ERROR", "Missing API settings")
                exitCode = 2
                return

        if requiredFile is not None:
            path, option = requiredFile
            try:
                requireFile(path, option)
            except typer.Exit:
                logEvent(logger, logging.ERROR, runId, "input", f"Input file is missing or not accessible: {path}")
                report.add_error("INPUT_ERROR", f"Input file is missing or not accessible: {path}")
                exitCode = 2
                return

        exitCode = runner(logger, report)

    finally:
        durationMs = getDurationMs(startMonotonic, time.monotonic())
        finalizeReport(
            report=report,
            durationMs=durationMs,
            logFile=logFilePath,
            reportDir=settings.report_dir,
        )
        reportPath = writeReportJson(report, settings.report_dir, f"report_{commandName}_{runId}")
        logEvent(logger, logging.INFO, runId, "report", f"Report written: {reportPath}")
        closeCommandLogger(logger)

        if exitCode is not None:
            raise typer.Exit(code=exitCode)


def streamCursor(
    openCursor: Callable[[QueryExecutor], Cursor],
    outputPath: str | None,
    settings: Settings,
    runId: str,
    logger: logging.Logger,
    report,
) -> int:
    """
    Назначение:
        Общая часть всех команд: открыть курсор, вычитать его в JSON lines,
        ошибки источника превратить в exit code 2.
    Контракт:
        - Выходной файл открывается до openCursor: источник захватывается
          только когда его есть кому передать, и дальше им владеет Cursor.
    """
    try:
        out = open(outputPath, "w", encoding="utf-8") if outputPath else None
    except OSError as exc:
        logEvent(logger, logging.ERROR, runId, "output", f"Failed to open output: {exc}")
        report.add_error("OUTPUT_ERROR", f"Failed to open output: {exc}")
        typer.echo(f"ERROR: failed to open output: {outputPath}", err=True)
        return 2

    executor = QueryExecutor(logger=logger)
    try:
        cursor = openCursor(executor)
    except SourceError as exc:
        if out is not None:
            out.close()
        logEvent(logger, logging.ERROR, runId, "source", f"Failed to open source: {exc}")
        report.add_error(exc.code, str(exc), exc.details)
        typer.echo(f"ERROR: {exc}", err=True)
        return 2

    def sink(row: Any) -> None:
        line = json.dumps(row, ensure_ascii=False, default=str)
        if out is not None:
            out.write(line + "\n")
        else:
            typer.echo(line)

    try:
        StreamUseCase(report_items_limit=settings.report_items_limit).run(
            cursor=cursor,
            sink=sink,
            logger=logger,
            run_id=runId,
            report=report,
        )
        return 0
    except SourceError as exc:
        logEvent(logger, logging.ERROR, runId, "source", f"Source failed: {exc}")
        report.add_error(exc.code, str(exc), exc.details)
        typer.echo(f"ERROR: source failed: {exc} (see logs/report)", err=True)
        return 2
    finally:
        if out is not None:
            out.close()


def runSqliteCommand(
    ctx: typer.Context,
    dbPath: str | None,
    sql: str,
    params: list[str] | None,
    offset: int | None,
    limit: int | None,
    outputPath: str | None,
) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]
    window = buildWindow(settings, offset, limit)

    def execute(logger, report) -> int:
        def openCursor(executor: QueryExecutor) -> Cursor:
            try:
                engine = SqliteEngine(openDatabase(dbPath, readOnly=True))
            except sqlite3.Error as exc:
                raise SourceError.wrap(exc, f"Failed to open DB: {exc}") from exc
            try:
                return executor.query_sqlite(
                    engine,
                    sql,
                    params=list(params or []),
                    window=window,
                    owns_connection=True,
                )
            except SourceError:
                engine.close()
                raise

        return streamCursor(openCursor, outputPath, settings, runId, logger, report)

    runWithReport(
        ctx=ctx,
        commandName="sqlite",
        sourceRef=dbPath,
        requiredFile=(dbPath, "--db"),
        requiresApiAccess=False,
        window=window,
        runner=execute,
    )


def runCsvCommand(
    ctx: typer.Context,
    csvPath: str | None,
    csvHasHeader: bool | None,
    columnTypes: list[str] | None,
    offset: int | None,
    limit: int | None,
    outputPath: str | None,
) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]
    window = buildWindow(settings, offset, limit)
    hasHeader = csvHasHeader if csvHasHeader is not None else settings.csv_has_header

    try:
        shape = RowShape.from_type_names(parseColumnTypes(columnTypes))
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=2)

    def execute(logger, report) -> int:
        report.set_context("csv", {"has_header": hasHeader, "column_types": parseColumnTypes(columnTypes)})

        def openCursor(executor: QueryExecutor) -> Cursor:
            return executor.query_csv(csvPath, has_header=hasHeader, window=window, shape=shape)

        return streamCursor(openCursor, outputPath, settings, runId, logger, report)

    runWithReport(
        ctx=ctx,
        commandName="csv",
        sourceRef=csvPath,
        requiredFile=(csvPath, "--csv"),
        requiresApiAccess=False,
        window=window,
        runner=execute,
    )


def runApiCommand(
    ctx: typer.Context,
    path: str,
    offset: int | None,
    limit: int | None,
    outputPath: str | None,
) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]
    window = buildWindow(settings, offset, limit)

    def execute(logger, report) -> int:
        baseUrl = f"https://{settings.host}:{settings.port}"
        report.set_context("api", {"base_url": baseUrl, "path": path, "page_size": settings.page_size})
        clients: list[ApiClient] = []

        def openCursor(executor: QueryExecutor) -> Cursor:
            client = ApiClient(
                baseUrl=baseUrl,
                username=settings.api_username,
                password=settings.api_password,
                timeoutSeconds=settings.timeout_seconds,
                tlsSkipVerify=settings.tls_skip_verify,
                caFile=settings.ca_file,
                retries=settings.retries,
                retryBackoffSeconds=settings.retry_backoff_seconds,
            )
            clients.append(client)
            try:
                return executor.query_api(
                    client,
                    path,
                    page_size=settings.page_size,
                    max_pages=settings.max_pages,
                    window=window,
                    owns_client=True,
                )
            except Exception:
                client.close()
                raise

        try:
            return streamCursor(openCursor, outputPath, settings, runId, logger, report)
        finally:
            if clients:
                report.set_context("api_stats", {"retry_attempts": clients[0].getRetryAttempts()})

    runWithReport(
        ctx=ctx,
        commandName="api",
        sourceRef=path,
        requiredFile=None,
        requiresApiAccess=True,
        window=window,
        runner=execute,
    )


@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier. If omitted, generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    reportDir: str | None = typer.Option(None, "--report-dir", help="Directory for reports."),
    host: str | None = typer.Option(None, "--host", help="API host/IP"),
    port: int | None = typer.Option(None, "--port", help="API port"),
    apiUsername: str | None = typer.Option(None, "--api-username", help="API username"),
    apiPassword: str | None = typer.Option(None, "--api-password", help="API password (avoid; use env/file)"),
    apiPasswordFile: str | None = typer.Option(None, "--api-password-file", help="Read API password from file"),
    tlsSkipVerify: bool | None = typer.Option(None, "--tls-skip-verify", help="Disable TLS verification"),
    caFile: str | None = typer.Option(None, "--ca-file", help="CA file path"),
    pageSize: int | None = typer.Option(None, "--page-size", min=1, help="Page size for API pagination"),
    maxPages: int | None = typer.Option(None, "--max-pages", min=1, help="Max pages to fetch from API"),
    timeoutSeconds: float | None = typer.Option(None, "--timeout-seconds", help="API timeout in seconds"),
    retries: int | None = typer.Option(None, "--retries", min=0, help="Retry attempts for API calls"),
    retryBackoffSeconds: float | None = typer.Option(None, "--retry-backoff-seconds", help="Base backoff for retries"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - создаёт каталоги log/report
        - сохраняет всё в ctx.obj для подкоманд
    """
    if apiPasswordFile and not apiPassword:
        p = Path(apiPasswordFile)
        if not p.exists() or not p.is_file():
            typer.echo(f"ERROR: api-password-file not found: {apiPasswordFile}", err=True)
            raise typer.Exit(code=2)
        apiPassword = p.read_text(encoding="utf-8").strip()

    if not runId:
        runId = generate_run_id()
    elif not is_valid_run_id(runId):
        typer.echo(f"ERROR: invalid --run-id: {runId}", err=True)
        raise typer.Exit(code=2)

    cliOverrides = {
        "host": host,
        "port": port,
        "api_username": apiUsername,
        "api_password": apiPassword,
        "log_level": logLevel,
        "log_dir": logDir,
        "report_dir": reportDir,
        "tls_skip_verify": tlsSkipVerify,
        "ca_file": caFile,
        "page_size": pageSize,
        "max_pages": maxPages,
        "timeout_seconds": timeoutSeconds,
        "retries": retries,
        "retry_backoff_seconds": retryBackoffSeconds,
    }
    try:
        loaded = loadSettings(config_path=config, cli_overrides=cliOverrides)
    except ValueError as exc:
        typer.echo(f"ERROR: invalid settings: {exc}", err=True)
        raise typer.Exit(code=2)

    ensureDir(loaded.settings.log_dir)
    ensureDir(loaded.settings.report_dir)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }


@app.command("sqlite")
def sqliteCommand(
    ctx: typer.Context,
    db: str | None = typer.Option(None, "--db", help="Path to SQLite database"),
    sql: str = typer.Option(..., "--sql", help="SELECT statement to stream"),
    param: list[str] | None = typer.Option(None, "--param", help="Positional query parameter (repeatable)"),
    offset: int | None = typer.Option(None, "--offset", min=0, help="Rows to skip"),
    limit: int | None = typer.Option(None, "--limit", min=0, help="Max rows to return"),
    output: str | None = typer.Option(None, "--output", help="Write JSON lines to file instead of stdout"),
):
    runSqliteCommand(ctx, db, sql, param, offset, limit, output)


@app.command("csv")
def csvCommand(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
    csvHasHeader: bool | None = typer.Option(None, "--csv-has-header/--no-csv-has-header", help="CSV includes header row"),
    columnType: list[str] | None = typer.Option(None, "--column-type", help="Column cast name=int|float|str|bool"),
    offset: int | None = typer.Option(None, "--offset", min=0, help="Rows to skip"),
    limit: int | None = typer.Option(None, "--limit", min=0, help="Max rows to return"),
    output: str | None = typer.Option(None, "--output", help="Write JSON lines to file instead of stdout"),
):
    runCsvCommand(ctx, csv, csvHasHeader, columnType, offset, limit, output)


@app.command("api")
def apiCommand(
    ctx: typer.Context,
    path: str = typer.Option(..., "--path", help="Endpoint path, e.g. /api/items"),
    offset: int | None = typer.Option(None, "--offset", min=0, help="Rows to skip"),
    limit: int | None = typer.Option(None, "--limit", min=0, help="Max rows to return"),
    output: str | None = typer.Option(None, "--output", help="Write JSON lines to file instead of stdout"),
):
    runApiCommand(ctx, path, offset, limit, output)


if __name__ == "__main__":
    app()
