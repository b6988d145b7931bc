import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

import structlog

from tokentally.errors import (
    InvalidDataError,
    LogFileNotFoundError,
    ParsingError,
    UsageError,
)
from tokentally.models import UsageCounts, UsageEntry

logger = structlog.get_logger()

LOG_FILE_SUFFIX = ".jsonl"

_USAGE_FIELDS = (
    "input_tokens",
    "output_tokens",
    "cache_creation_input_tokens",
    "cache_read_input_tokens",
)


class MalformedUsageError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class LineDiagnostic:
    # 1-based line number within the parsed content
    line_number: "int"
    reason: "str"


@dataclass(frozen=True, slots=True)
class ParseResult:
    entries: "tuple[UsageEntry, ...]"
    diagnostics: "tuple[LineDiagnostic, ...]" = ()


def _str_or_none(value: "Any") -> "str | None":
    return value if isinstance(value, str) and value else None


def _dict_or_none(value: "Any") -> "dict[str, Any] | None":
    return value if isinstance(value, dict) else None


@dataclass(frozen=True, slots=True)
class RawRecord:
    """
    RawRecord captures every location a field may appear in
    a log line without deciding which one wins. Claude Code
    nests model and usage under "message" while other writers
    put them at the top level.
    """

    model: "Any" = None
    usage: "Any" = None
    message_model: "Any" = None
    message_usage: "Any" = None
    timestamp: "Any" = None
    project_path: "Any" = None
    cwd: "Any" = None

    @classmethod
    def from_json(cls, data: "dict[str, Any]") -> "RawRecord":
        message = _dict_or_none(data.get("message")) or {}
        return cls(
            model=data.get("model"),
            usage=data.get("usage"),
            message_model=message.get("model"),
            message_usage=message.get("usage"),
            timestamp=data.get("timestamp"),
            project_path=data.get("project_path"),
            cwd=data.get("cwd"),
        )

    def resolve(self) -> "UsageEntry | None":
        """
        picks top-level values over nested ones and returns a
        normalized entry, or None when a required field is missing.
        Raises MalformedUsageError if the usage object is present
        but can't be interpreted.
        """
        model = _str_or_none(self.model) or _str_or_none(self.message_model)
        raw_usage = self.usage if self.usage is not None else self.message_usage
        timestamp = _str_or_none(self.timestamp)
        project_path = _str_or_none(self.project_path) or _str_or_none(self.cwd)

        if model is None or raw_usage is None or timestamp is None:
            return None
        if project_path is None:
            return None

        return UsageEntry(
            model=model,
            usage=_decode_usage(raw_usage),
            timestamp=timestamp,
            project_path=project_path,
        )


def _decode_usage(raw: "Any") -> "UsageCounts":
    if not isinstance(raw, dict):
        raise MalformedUsageError(f"usage is {type(raw).__name__}, not an object")

    counts: "dict[str, int | None]" = {}
    for name in _USAGE_FIELDS:
        value = raw.get(name)
        # bool is a subclass of int but never a token count
        if value is not None and (
            isinstance(value, bool) or not isinstance(value, int) or value < 0
        ):
            raise MalformedUsageError(f"{name} is not a non-negative integer")
        counts[name] = value

    return UsageCounts(**counts)


class LogRecordParser:
    """
    LogRecordParser turns JSON Lines content into UsageEntry
    objects, in input order.

    In lenient mode (the default) a line that isn't valid JSON
    or carries a malformed usage object is logged, recorded as
    a diagnostic and skipped. In strict mode the first such line
    raises ParsingError for the whole batch. Either way, valid
    lines without usage data are skipped silently.
    """

    def __init__(self, strict: "bool" = False) -> "None":
        self.strict = strict

    def parse(self, content: "str") -> "ParseResult":
        entries: "list[UsageEntry]" = []
        diagnostics: "list[LineDiagnostic]" = []

        # JSON strings may carry raw U+2028 and friends, so only
        # split on "\n"; strip() takes care of "\r\n" endings
        for line_number, line in enumerate(content.split("\n"), start=1):
            line = line.strip()
            if not line:
                continue

            try:
                data = json.loads(line)
            except json.JSONDecodeError as exc:
                self._fail(line_number, f"invalid JSON: {exc.msg}", diagnostics)
                continue
            except (ValueError, RecursionError) as exc:
                # oversized integers and very deep nesting
                self._fail(line_number, f"undecodable JSON: {exc}", diagnostics)
                continue

            if not isinstance(data, dict):
                continue

            try:
                entry = RawRecord.from_json(data).resolve()
            except MalformedUsageError as exc:
                self._fail(line_number, f"malformed usage: {exc}", diagnostics)
                continue

            if entry is not None:
                entries.append(entry)

        return ParseResult(entries=tuple(entries), diagnostics=tuple(diagnostics))

    def _fail(
        self,
        line_number: "int",
        reason: "str",
        diagnostics: "list[LineDiagnostic]",
    ) -> "None":
        if self.strict:
            raise ParsingError(line_number, reason)

        logger.warning("log_line_skipped", line=line_number, reason=reason)
        diagnostics.append(LineDiagnostic(line_number=line_number, reason=reason))

    def parse_file(self, path: "str | Path") -> "ParseResult":
        """
        reads and parses a single log file.
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise LogFileNotFoundError(str(path)) from None

        try:
            content = data.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise InvalidDataError(str(path)) from None

        return self.parse(content)

    def discover_files(self, root: "str | Path") -> "list[Path]":
        """
        recursively finds log files under root, sorted by path.
        """
        root = Path(root).expanduser()
        if not root.is_dir():
            logger.warning("log_root_missing", root=str(root))
            return []

        return sorted(p for p in root.rglob(f"*{LOG_FILE_SUFFIX}") if p.is_file())

    def parse_all(self, root: "str | Path") -> "list[UsageEntry]":
        """
        parses every log file under root and concatenates the
        entries in discovery order. A file that can't be read or
        parsed is logged and skipped.
        """
        entries: "list[UsageEntry]" = []
        files = self.discover_files(root)

        for path in files:
            try:
                result = self.parse_file(path)
            except (UsageError, OSError) as exc:
                logger.warning("log_file_skipped", path=str(path), error=str(exc))
                continue

            entries.extend(result.entries)

        logger.debug("log_files_parsed", file_count=len(files), entry_count=len(entries))
        return entries


def parse_timestamp(value: "str") -> "datetime":
    """
    parses an ISO-8601 timestamp such as "2025-07-18T02:48:03.470Z"
    into an aware datetime. Naive values are taken as UTC.
    """
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_datetime(value: "datetime | str") -> "datetime":
    if isinstance(value, str):
        return parse_timestamp(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def filter_by_project(
    entries: "Iterable[UsageEntry]", project_path: "str"
) -> "list[UsageEntry]":
    return [e for e in entries if e.project_path == project_path]


def filter_by_model(entries: "Iterable[UsageEntry]", model: "str") -> "list[UsageEntry]":
    return [e for e in entries if e.model == model]


def filter_by_month(entries: "Iterable[UsageEntry]", month: "str") -> "list[UsageEntry]":
    """
    keeps entries whose timestamp starts with month ("YYYY-MM").
    """
    return [e for e in entries if e.timestamp[:7] == month]


def filter_by_month_range(
    entries: "Iterable[UsageEntry]", start: "str", end: "str"
) -> "list[UsageEntry]":
    return [e for e in entries if start <= e.timestamp[:7] <= end]


def filter_by_date_range(
    entries: "Iterable[UsageEntry]",
    start: "datetime | str",
    end: "datetime | str",
) -> "list[UsageEntry]":
    """
    keeps entries whose timestamp falls within [start, end].
    Entries with unparseable timestamps are dropped.
    """
    start_dt = _as_datetime(start)
    end_dt = _as_datetime(end)

    filtered: "list[UsageEntry]" = []
    for entry in entries:
        try:
            ts = parse_timestamp(entry.timestamp)
        except ValueError:
            continue
        if start_dt <= ts <= end_dt:
            filtered.append(entry)

    return filtered
