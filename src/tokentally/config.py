import os
from dataclasses import dataclass

DEFAULT_LOG_ROOT = "~/.claude/projects"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class Config:
    # directory searched recursively for *.jsonl usage logs
    log_root: "str" = DEFAULT_LOG_ROOT
    # skip a whole log file on its first bad line
    strict_parsing: "bool" = False
    # listen_address: format ":9186" or
    # "0.0.0.0:9186"
    listen_address: "str" = ":9186"
    # refresh interval in seconds
    refresh_interval: "int" = 60
    log_level: "str" = "info"
    # "console" or "json"
    log_format: "str" = "console"
    # print a single report and exit instead of serving metrics
    once: "bool" = False

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            log_root=os.environ.get("TOKENTALLY_LOG_ROOT", "") or DEFAULT_LOG_ROOT,
            strict_parsing=os.environ.get("TOKENTALLY_STRICT", "").lower() in _TRUTHY,
        )
