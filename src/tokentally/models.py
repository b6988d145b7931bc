import os
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class UsageCounts:
    """
    UsageCounts holds the token counts reported for a single
    assistant response. A None count means the log did not
    report it and is treated as 0 everywhere.
    """

    input_tokens: "int | None" = None
    output_tokens: "int | None" = None
    cache_creation_input_tokens: "int | None" = None
    cache_read_input_tokens: "int | None" = None

    @property
    def total_tokens(self) -> "int":
        return (
            (self.input_tokens or 0)
            + (self.output_tokens or 0)
            + (self.cache_creation_input_tokens or 0)
            + (self.cache_read_input_tokens or 0)
        )


@dataclass(frozen=True, slots=True)
class UsageEntry:
    """
    UsageEntry is one normalized usage event extracted
    from a log line.
    """

    model: "str"
    # the parser always sets this; entries built by hand may leave it out
    usage: "UsageCounts | None"
    # ISO-8601 UTC, e.g. "2025-07-15T08:48:03.470Z"
    timestamp: "str"
    # working directory of the session that produced the entry
    project_path: "str"


@dataclass(frozen=True, slots=True)
class PricingRate:
    """
    PricingRate holds USD prices per million tokens.
    """

    input: "float"
    output: "float"
    cache_write: "float"
    cache_read: "float"

    def cost(self, usage: "UsageCounts") -> "float":
        """
        applies the rate to the given usage. Terms are summed
        left to right without intermediate rounding.
        """
        return (
            (usage.input_tokens or 0) * self.input / 1_000_000.0
            + (usage.output_tokens or 0) * self.output / 1_000_000.0
            + (usage.cache_creation_input_tokens or 0) * self.cache_write / 1_000_000.0
            + (usage.cache_read_input_tokens or 0) * self.cache_read / 1_000_000.0
        )


@dataclass(slots=True)
class ModelUsage:
    model: "str"
    total_cost: "float" = 0.0
    total_tokens: "int" = 0
    input_tokens: "int" = 0
    output_tokens: "int" = 0
    cache_creation_tokens: "int" = 0
    cache_read_tokens: "int" = 0
    session_count: "int" = 0


@dataclass(slots=True)
class ProjectUsage:
    project_path: "str"
    # last path segment, e.g. "openapi-mcp"
    project_name: "str" = field(init=False)
    total_cost: "float" = 0.0
    total_tokens: "int" = 0
    session_count: "int" = 0
    # latest timestamp seen for the project
    last_used: "str" = ""

    def __post_init__(self) -> "None":
        self.project_name = (
            os.path.basename(self.project_path.rstrip("/")) or self.project_path
        )


@dataclass(slots=True)
class MonthlyUsage:
    # "YYYY-MM"
    month: "str"
    total_cost: "float" = 0.0
    total_tokens: "int" = 0
    session_count: "int" = 0
    models_used: "list[str]" = field(default_factory=list)


@dataclass(slots=True)
class DailyUsage:
    # "YYYY-MM-DD" in local time
    date: "str"
    total_cost: "float" = 0.0
    total_tokens: "int" = 0
    session_count: "int" = 0
    models_used: "list[str]" = field(default_factory=list)


@dataclass(slots=True)
class HourlyUsage:
    # "YYYY-MM-DDTHH" in local time
    hour: "str"
    total_cost: "float" = 0.0
    total_tokens: "int" = 0
    session_count: "int" = 0
    models_used: "list[str]" = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class OverallStats:
    total_cost: "float" = 0.0
    total_tokens: "int" = 0
    total_sessions: "int" = 0


@dataclass(frozen=True, slots=True)
class DateRange:
    start: "str" = ""
    end: "str" = ""


@dataclass(frozen=True, slots=True)
class UsageStatistics:
    """
    UsageStatistics is the complete output of one aggregation
    pass and the only object presentation code needs.
    """

    total_cost: "float"
    total_tokens: "int"
    total_sessions: "int"
    model_usage: "tuple[ModelUsage, ...]"
    project_usage: "tuple[ProjectUsage, ...]"
    monthly_usage: "tuple[MonthlyUsage, ...]"
    daily_usage: "tuple[DailyUsage, ...]"
    hourly_usage: "tuple[HourlyUsage, ...]"
    date_range: "DateRange"
