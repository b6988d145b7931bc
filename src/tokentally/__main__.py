import asyncio
import signal

import structlog
from prometheus_client import start_http_server

from tokentally.cli import parse_args
from tokentally.collector import Collector
from tokentally.config import Config
from tokentally.errors import NoDataFoundError
from tokentally.logging import setup_logging
from tokentally.metrics import MetricsUpdater
from tokentally.parser import LogRecordParser
from tokentally.query import UsageQuery
from tokentally.report import render_report

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9186' or '0.0.0.0:9186'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def _print_report(query: "UsageQuery") -> "None":
    try:
        stats = query.get_usage_statistics()
    except NoDataFoundError:
        raise SystemExit(
            f"No usage data found under {query.root}. "
            "Check that the directory exists and is readable."
        ) from None

    print(render_report(stats))


def _serve(query: "UsageQuery", config: "Config") -> "None":
    metrics_updater = MetricsUpdater()

    host, port = _parse_listen_address(config.listen_address)
    start_http_server(port, addr=host)
    logger.info("metrics_server_started", host=host, port=port)

    collector = Collector(query, metrics_updater, config.refresh_interval)

    async def _run() -> "None":
        loop = asyncio.get_running_loop()
        # for SIGINT and SIGTERM, signal the collector
        # to stop gracefully
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, collector.stop)

        try:
            await collector.run()
        finally:
            logger.info("shutdown_complete")

    asyncio.run(_run())


def main() -> "None":
    config = parse_args()
    setup_logging(config.log_level, config.log_format)

    query = UsageQuery(
        root=config.log_root,
        parser=LogRecordParser(strict=config.strict_parsing),
    )
    logger.debug("log_root_configured", root=str(query.root), strict=config.strict_parsing)

    if config.once:
        _print_report(query)
        return

    _serve(query, config)


if __name__ == "__main__":
    main()
