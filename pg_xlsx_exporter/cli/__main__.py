from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.connection_pool import open_connection_pool
from ..exceptions import ExportError
from ..logging.init import log_summary, set_debug, setup_logging
from ..services.orchestrator import export_all
from ..services.summary import render_summary_line
from ..services.worker_pool import default_worker_count

"""CLI entrypoint.

Flow:
- Load .env (overrides existing environment; DB parameters take priority)
- Load + validate the YAML config, apply --output / --workers overrides
- Open the connection pool, export every table, persist the workbook
- Print the SUMMARY line

Exit code 0 on success, 1 on any fatal error (error printed on stderr).
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True makes .env values win over already-set environment variables.
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="pg-xlsx-export", description="PostgreSQL tables -> multi-sheet XLSX exporter"
    )
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--output", help="Output .xlsx path (overrides output_path)")
    p.add_argument("--workers", type=_positive_int, help="Worker count (overrides worker_count)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-output", action="store_true", help="Print sheet headers & first rows of the output file then exit"
    )
    return p.parse_args(argv)


def _inspect_output(path: Path) -> int:
    from ..excel.reader import normalize_sheet, read_exported_workbook

    if not path.exists():
        print(f"inspect: output not found: {path}", file=sys.stderr)
        return EXIT_FATAL
    print(f"FILE: {path.name}")
    for sname, df in read_exported_workbook(path).items():
        sd = normalize_sheet(df, sname)
        print(f"  SHEET: {sname} cols={sd.columns} rows={len(sd.rows)}")
        print("    sample_rows=", sd.rows[:3])
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む ([] はテストからの明示的な空引数)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    cfg = cfg.with_overrides(output_path=args.output, worker_count=args.workers)

    if args.inspect_output:
        return _inspect_output(Path(cfg.output_path))

    worker_count = cfg.worker_count or default_worker_count()
    cfg = cfg.with_overrides(worker_count=worker_count)
    try:
        with open_connection_pool(cfg.database, max_connections=worker_count) as source:
            result = export_all(cfg, source)
    except ExportError as e:
        logger.error(f"export: {type(e).__name__}: {e}")
        return EXIT_FATAL

    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
