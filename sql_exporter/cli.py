"""
Process entry point: load the config, build the exporter and serve /metrics.

Exit codes:
    0  server ran and shut down
    1  exporter config could not be loaded or validated
    2  invalid command line (printed with usage by argparse)
"""

import argparse
import re
import sys
from collections.abc import Sequence

import structlog
import uvicorn

from sql_exporter import __version__
from sql_exporter.api import create_app
from sql_exporter.config import get_settings, load_config
from sql_exporter.errors import ConfigError
from sql_exporter.logging import configure_logging
from sql_exporter.services.db_client import DbClient
from sql_exporter.services.exporter import Exporter
from sql_exporter.services.registry import MetricRegistry

logger = structlog.get_logger(__name__)

_YAML_PATH = re.compile(r"^.+\.(yaml|yml)$", re.IGNORECASE)


def yaml_path(value: str) -> str:
    if not _YAML_PATH.match(value):
        raise argparse.ArgumentTypeError(f"config file must end in .yaml or .yml: {value!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sql-exporter",
        description="Run SQL queries periodically and export the results as Prometheus gauges",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        required=True,
        type=yaml_path,
        help="Path to the exporter configuration file (.yaml or .yml)",
    )
    parser.add_argument("--host", help="Bind address (default: API_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Bind port (default: API_PORT or 8080)")
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Serve random values instead of querying MySQL",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.logging.level, settings.logging.format)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("config_load_failed", error=str(e))
        return 1

    db_client: DbClient
    if args.simulate:
        from sql_exporter.adapters.simulated import SimulatedDbClient

        db_client = SimulatedDbClient()
    else:
        from sql_exporter.adapters.mysql import MySqlClient

        db_client = MySqlClient(config.db)

    exporter = Exporter(
        config,
        db_client,
        registry=MetricRegistry(include_process_metrics=settings.scheduler.include_process_metrics),
        initial_delay_seconds=settings.scheduler.initial_delay_seconds,
    )

    host = args.host or settings.api.host
    port = args.port or settings.api.port
    logger.info("server_starting", host=host, port=port)
    uvicorn.run(create_app(exporter), host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
