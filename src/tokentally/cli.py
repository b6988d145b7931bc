import argparse

from tokentally.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    parser = argparse.ArgumentParser(
        prog="tokentally",
        description="Cost and usage statistics for Claude Code usage logs",
    )
    parser.add_argument(
        "--log-root",
        dest="log_root",
        default=None,
        help="Directory searched for *.jsonl logs (default: ~/.claude/projects)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Skip a whole log file on its first unparseable line",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Print a usage report and exit",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=":9186",
        help="Address to listen on (default: :9186)",
    )
    parser.add_argument(
        "--refresh.interval",
        dest="refresh_interval",
        type=int,
        default=60,
        help="Refresh interval in seconds (default: 60)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=["console", "json"],
        help="Log output format (default: console)",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    if args.log_root:
        config.log_root = args.log_root
    if args.strict:
        config.strict_parsing = True
    config.once = args.once
    config.listen_address = args.listen_address
    config.refresh_interval = args.refresh_interval
    config.log_level = args.log_level
    config.log_format = args.log_format
    return config
