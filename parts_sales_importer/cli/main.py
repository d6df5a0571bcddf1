from __future__ import annotations

import argparse
import os
import sys
from contextlib import ExitStack
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, ImportConfig, load_config
from ..db.connection import connect
from ..db.postgres import PostgresRepository, ensure_schema
from ..db.repository import ImportRepository, InMemoryRepository, RepositoryError
from ..excel.decoder import cell_text, decode_row, is_blank_row
from ..excel.headers import build_header_map, header_signature
from ..excel.reader import WorkbookReadError, read_first_sheet
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import get_logger, log_summary, set_debug, setup_logging
from ..models.import_result import ImportResult
from ..services.importer import NoDataRowsError, import_parts_sales
from ..services.summary import render_result_line, render_totals_line
from ..services.validation import missing_required_fields

"""CLI entrypoint: import one or more parts sales reports.

Each file becomes its own ImportBatch. A per-file SUMMARY line and a totals
line are printed at the end.

Exit codes:
    0  every file imported with zero row errors
    2  at least one file had row errors or could not be imported
    1  fatal (configuration, usage, --health failure)
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env (python-dotenv); .env values win over the inherited environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="parts-sales-import", description="Import parts sales spreadsheets"
    )
    p.add_argument("files", nargs="*", type=Path, help="xlsx / csv files to import")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data",
        action="store_true",
        help="Print header mapping & first rows, then exit (no writes)",
    )
    p.add_argument("--health", action="store_true", help="Probe the database and exit")
    p.add_argument("--init-schema", action="store_true", help="Create importer tables and exit")
    return p.parse_args(argv)


def _open_repository(cfg: ImportConfig, stack: ExitStack) -> tuple[ImportRepository, str]:
    """Return (repository, mode). mode is "live" or "mock".

    DISABLE_DB_CONNECT=1 forces mock mode; a failed connection falls back to it.
    """
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        return InMemoryRepository(), "mock"
    logger = get_logger()
    try:
        conn = stack.enter_context(connect(cfg.database))
    except psycopg2.Error as e:
        logger.warning(f"DB connection failed -> mock mode (nothing is persisted): {e}")
        return InMemoryRepository(), "mock"
    cursor = stack.enter_context(conn.cursor())
    return PostgresRepository(cursor), "live"


def _health(cfg: ImportConfig) -> int:
    try:
        with connect(cfg.database) as conn, conn.cursor() as cur:
            ok = PostgresRepository(cur).ping()
    except psycopg2.Error:
        ok = False
    print("ok" if ok else "not ok")
    return EXIT_SUCCESS_ALL if ok else EXIT_FATAL


def _init_schema(cfg: ImportConfig) -> int:
    logger = get_logger()
    try:
        with connect(cfg.database) as conn, conn.cursor() as cur:
            ensure_schema(cur)
    except (psycopg2.Error, RepositoryError) as e:
        logger.error(f"init-schema: {e}")
        return EXIT_FATAL
    logger.info("schema ready")
    return EXIT_SUCCESS_ALL


def _inspect_data(files: list[Path], cfg: ImportConfig) -> int:
    for f in files:
        print(f"FILE: {f.name}")
        try:
            rows = read_first_sheet(f.read_bytes(), f.name)
        except (OSError, WorkbookReadError) as e:
            print(f"  read_error: {e}")
            continue
        if not rows:
            print("  (empty sheet)")
            continue
        headers = [cell_text(h) for h in rows[0]]
        header_map = build_header_map(headers, cfg.header_aliases)
        print(f"  signature={header_signature(header_map.normalized_headers)}")
        mapped = {name: headers[idx] for name, idx in header_map.field_index.items()}
        print(f"  mapped={mapped}")
        print(f"  unknown={header_map.unknown_columns}")
        print(f"  missing_required={missing_required_fields(header_map)}")
        data_rows = [r for r in rows[1:] if not is_blank_row(r)]
        for r in data_rows[:INSPECT_SAMPLE_ROWS]:
            decoded = decode_row(r, header_map, headers)
            print(f"    row={decoded.fields} unknown={decoded.unknown}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 僅在 None 時讀 sys.argv (測試會呼叫 main([]))
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    if args.health:
        return _health(cfg)
    if args.init_schema:
        return _init_schema(cfg)

    if not args.files:
        logger.error("no input files given")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(args.files, cfg)

    results: list[ImportResult] = []
    failed = 0
    error_log = ErrorLogBuffer(cfg.logs_directory)

    with ExitStack() as stack:
        repository, mode = _open_repository(cfg, stack)
        logger.info(f"mode={mode} files={len(args.files)}")
        for path in args.files:
            try:
                buffer = path.read_bytes()
                result = import_parts_sales(
                    buffer,
                    path.name,
                    repository=repository,
                    config=cfg,
                    error_log=error_log,
                    show_progress=True,
                )
            except (OSError, WorkbookReadError, NoDataRowsError, RepositoryError) as e:
                logger.error(f"{path.name}: {e}")
                failed += 1
                continue
            results.append(result)
            # log_summary 會自行加上 "SUMMARY " 前綴
            log_summary(render_result_line(path.name, result)[len("SUMMARY "):])

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning(f"failed writing error log: {e}")
    else:
        if log_path is not None:
            logger.info(f"error log: {log_path}")

    log_summary(render_totals_line(results, failed)[len("SUMMARY "):])

    if failed or any(not r.is_clean for r in results):
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
