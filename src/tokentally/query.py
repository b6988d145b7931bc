from datetime import datetime, tzinfo
from pathlib import Path

import structlog

from tokentally import parser as filters
from tokentally.aggregator import UsageAggregator
from tokentally.errors import NoDataFoundError, UsageError
from tokentally.models import (
    DailyUsage,
    HourlyUsage,
    ModelUsage,
    MonthlyUsage,
    PricingRate,
    ProjectUsage,
    UsageEntry,
    UsageStatistics,
)
from tokentally.parser import LogRecordParser
from tokentally.pricing import PricingEngine

logger = structlog.get_logger()

DEFAULT_LOG_ROOT = Path("~/.claude/projects")


class UsageQuery:
    """
    UsageQuery loads every log file under a root directory and
    answers usage questions over the combined entries.

    Each call re-reads the logs so results always reflect what
    is on disk. File access is blocking, so callers that need to
    stay responsive should run these methods in a worker thread.

    Only get_usage_statistics (and the totals built on it) raise
    when nothing is found. The other queries degrade to an empty
    result and log the failure.
    """

    def __init__(
        self,
        root: "str | Path | None" = None,
        parser: "LogRecordParser | None" = None,
        pricing: "PricingEngine | None" = None,
        tz: "tzinfo | None" = None,
    ) -> "None":
        self.root = Path(root if root is not None else DEFAULT_LOG_ROOT).expanduser()
        self.parser = parser if parser is not None else LogRecordParser()
        self.pricing = pricing if pricing is not None else PricingEngine()
        self.aggregator = UsageAggregator(pricing=self.pricing, tz=tz)

    def load_entries(self) -> "list[UsageEntry]":
        return self.parser.parse_all(self.root)

    def _load_or_empty(self) -> "list[UsageEntry]":
        try:
            return self.load_entries()
        except (UsageError, OSError) as exc:
            logger.warning("usage_load_failed", root=str(self.root), error=str(exc))
            return []

    def get_usage_statistics(self) -> "UsageStatistics":
        entries = self.load_entries()
        if not entries:
            raise NoDataFoundError(f"no usage data found under {self.root}")

        return self.aggregator.generate_usage_statistics(entries)

    def get_usage_by_month(self, month: "str") -> "list[MonthlyUsage]":
        entries = filters.filter_by_month(self._load_or_empty(), month)
        return self.aggregator.aggregate_by_month(entries)

    def get_usage_by_month_range(self, start: "str", end: "str") -> "list[MonthlyUsage]":
        """
        monthly buckets for months in [start, end], both "YYYY-MM".
        """
        entries = filters.filter_by_month_range(self._load_or_empty(), start, end)
        return self.aggregator.aggregate_by_month(entries)

    def get_usage_by_project(self, project_path: "str") -> "list[ProjectUsage]":
        entries = filters.filter_by_project(self._load_or_empty(), project_path)
        return self.aggregator.aggregate_by_project(entries)

    def get_all_project_usage(self) -> "list[ProjectUsage]":
        return self.aggregator.aggregate_by_project(self._load_or_empty())

    def get_usage_by_model(self, model: "str") -> "list[ModelUsage]":
        entries = filters.filter_by_model(self._load_or_empty(), model)
        return self.aggregator.aggregate_by_model(entries)

    def get_all_model_usage(self) -> "list[ModelUsage]":
        return self.aggregator.aggregate_by_model(self._load_or_empty())

    def get_usage_by_date_range(
        self,
        start: "datetime | str",
        end: "datetime | str",
    ) -> "UsageStatistics":
        entries = filters.filter_by_date_range(self._load_or_empty(), start, end)
        return self.aggregator.generate_usage_statistics(entries)

    def get_daily_usage(self) -> "list[DailyUsage]":
        return self.aggregator.aggregate_by_day(self._load_or_empty())

    def get_daily_usage_for_month(self, month: "str") -> "list[DailyUsage]":
        entries = filters.filter_by_month(self._load_or_empty(), month)
        return self.aggregator.aggregate_by_day(entries)

    def get_hourly_usage(self) -> "list[HourlyUsage]":
        return self.aggregator.aggregate_by_hour(self._load_or_empty())

    def get_usage_by_project_and_month(
        self, project_path: "str", month: "str"
    ) -> "UsageStatistics":
        entries = filters.filter_by_project(self._load_or_empty(), project_path)
        entries = filters.filter_by_month(entries, month)
        return self.aggregator.generate_usage_statistics(entries)

    def get_usage_by_model_and_month(self, model: "str", month: "str") -> "UsageStatistics":
        entries = filters.filter_by_model(self._load_or_empty(), model)
        entries = filters.filter_by_month(entries, month)
        return self.aggregator.generate_usage_statistics(entries)

    def get_total_spending(self) -> "float":
        return self.get_usage_statistics().total_cost

    def get_total_tokens(self) -> "int":
        return self.get_usage_statistics().total_tokens

    def get_total_sessions(self) -> "int":
        return self.get_usage_statistics().total_sessions

    def get_top_projects(self, limit: "int" = 10) -> "list[ProjectUsage]":
        return self.get_all_project_usage()[:limit]

    def get_top_models(self, limit: "int" = 10) -> "list[ModelUsage]":
        return self.get_all_model_usage()[:limit]

    def supported_models(self) -> "list[str]":
        return self.pricing.supported_models()

    def is_model_supported(self, model: "str") -> "bool":
        return self.pricing.is_model_supported(model)

    def pricing_info(self, model: "str") -> "PricingRate | None":
        return self.pricing.pricing_info(model)

    def discover_available_projects(self) -> "list[str]":
        return sorted({e.project_path for e in self._load_or_empty()})

    def discover_available_models(self) -> "list[str]":
        return sorted({e.model for e in self._load_or_empty()})

    def discover_available_months(self) -> "list[str]":
        """
        distinct "YYYY-MM" months, most recent first.
        """
        return sorted({e.timestamp[:7] for e in self._load_or_empty()}, reverse=True)
