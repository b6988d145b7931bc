from datetime import tzinfo
from typing import Sequence

from tokentally.models import (
    DailyUsage,
    DateRange,
    HourlyUsage,
    ModelUsage,
    MonthlyUsage,
    OverallStats,
    ProjectUsage,
    UsageEntry,
    UsageStatistics,
)
from tokentally.parser import parse_timestamp
from tokentally.pricing import PricingEngine


class UsageAggregator:
    """
    UsageAggregator folds usage entries into per-model, per-project,
    monthly, daily and hourly views. Every call builds fresh state,
    so a single aggregator can be reused across calls.

    Daily and hourly buckets use the local calendar of tz (the
    process's local timezone when None), so a UTC timestamp just
    after local midnight lands on the right local day. Monthly
    buckets use the raw UTC "YYYY-MM" prefix.
    """

    def __init__(
        self,
        pricing: "PricingEngine | None" = None,
        tz: "tzinfo | None" = None,
    ) -> "None":
        self.pricing = pricing if pricing is not None else PricingEngine()
        self.tz = tz

    def _local_key(self, timestamp: "str", fmt: "str", fallback_len: "int") -> "str":
        try:
            dt = parse_timestamp(timestamp).astimezone(self.tz)
        except (ValueError, OverflowError):
            # unparseable, or too close to datetime.min/max to shift
            return timestamp[:fallback_len]
        return dt.strftime(fmt)

    def local_date(self, timestamp: "str") -> "str":
        return self._local_key(timestamp, "%Y-%m-%d", 10)

    def local_hour(self, timestamp: "str") -> "str":
        return self._local_key(timestamp, "%Y-%m-%dT%H", 13)

    def aggregate_by_model(self, entries: "Sequence[UsageEntry]") -> "list[ModelUsage]":
        stats: "dict[str, ModelUsage]" = {}

        for entry in entries:
            usage = entry.usage
            if usage is None:
                continue

            stat = stats.get(entry.model)
            if stat is None:
                stat = stats[entry.model] = ModelUsage(model=entry.model)

            stat.total_cost += self.pricing.cost(entry.model, usage)
            stat.input_tokens += usage.input_tokens or 0
            stat.output_tokens += usage.output_tokens or 0
            stat.cache_creation_tokens += usage.cache_creation_input_tokens or 0
            stat.cache_read_tokens += usage.cache_read_input_tokens or 0
            stat.total_tokens = (
                stat.input_tokens
                + stat.output_tokens
                + stat.cache_creation_tokens
                + stat.cache_read_tokens
            )
            stat.session_count += 1

        return sorted(stats.values(), key=lambda s: s.total_cost, reverse=True)

    def aggregate_by_project(
        self, entries: "Sequence[UsageEntry]"
    ) -> "list[ProjectUsage]":
        stats: "dict[str, ProjectUsage]" = {}

        for entry in entries:
            usage = entry.usage
            if usage is None:
                continue

            stat = stats.get(entry.project_path)
            if stat is None:
                stat = stats[entry.project_path] = ProjectUsage(
                    project_path=entry.project_path
                )

            stat.total_cost += self.pricing.cost(entry.model, usage)
            stat.total_tokens += self.pricing.total_tokens(usage)
            stat.session_count += 1
            # fixed-width ISO-8601 strings compare chronologically
            if entry.timestamp > stat.last_used:
                stat.last_used = entry.timestamp

        return sorted(stats.values(), key=lambda s: s.total_cost, reverse=True)

    def aggregate_by_month(
        self, entries: "Sequence[UsageEntry]"
    ) -> "list[MonthlyUsage]":
        stats: "dict[str, MonthlyUsage]" = {}

        for entry in entries:
            usage = entry.usage
            if usage is None:
                continue

            month = entry.timestamp[:7]
            stat = stats.get(month)
            if stat is None:
                stat = stats[month] = MonthlyUsage(month=month)

            stat.total_cost += self.pricing.cost(entry.model, usage)
            stat.total_tokens += self.pricing.total_tokens(usage)
            stat.session_count += 1
            if entry.model not in stat.models_used:
                stat.models_used.append(entry.model)

        return sorted(stats.values(), key=lambda s: s.month, reverse=True)

    def aggregate_by_day(self, entries: "Sequence[UsageEntry]") -> "list[DailyUsage]":
        stats: "dict[str, DailyUsage]" = {}

        for entry in entries:
            usage = entry.usage
            if usage is None:
                continue

            date = self.local_date(entry.timestamp)
            stat = stats.get(date)
            if stat is None:
                stat = stats[date] = DailyUsage(date=date)

            stat.total_cost += self.pricing.cost(entry.model, usage)
            stat.total_tokens += self.pricing.total_tokens(usage)
            stat.session_count += 1
            if entry.model not in stat.models_used:
                stat.models_used.append(entry.model)

        return sorted(stats.values(), key=lambda s: s.date, reverse=True)

    def aggregate_by_hour(self, entries: "Sequence[UsageEntry]") -> "list[HourlyUsage]":
        stats: "dict[str, HourlyUsage]" = {}

        for entry in entries:
            usage = entry.usage
            if usage is None:
                continue

            hour = self.local_hour(entry.timestamp)
            stat = stats.get(hour)
            if stat is None:
                stat = stats[hour] = HourlyUsage(hour=hour)

            stat.total_cost += self.pricing.cost(entry.model, usage)
            stat.total_tokens += self.pricing.total_tokens(usage)
            stat.session_count += 1
            if entry.model not in stat.models_used:
                stat.models_used.append(entry.model)

        return sorted(stats.values(), key=lambda s: s.hour, reverse=True)

    def calculate_overall_stats(self, entries: "Sequence[UsageEntry]") -> "OverallStats":
        total_cost = 0.0
        total_tokens = 0
        total_sessions = 0

        for entry in entries:
            if entry.usage is None:
                continue
            total_cost += self.pricing.cost(entry.model, entry.usage)
            total_tokens += self.pricing.total_tokens(entry.usage)
            total_sessions += 1

        return OverallStats(
            total_cost=total_cost,
            total_tokens=total_tokens,
            total_sessions=total_sessions,
        )

    @staticmethod
    def calculate_date_range(entries: "Sequence[UsageEntry]") -> "DateRange":
        if not entries:
            return DateRange()

        timestamps = [e.timestamp for e in entries]
        return DateRange(start=min(timestamps), end=max(timestamps))

    def generate_usage_statistics(
        self, entries: "Sequence[UsageEntry]"
    ) -> "UsageStatistics":
        """
        runs every aggregation over entries and bundles the results.
        """
        overall = self.calculate_overall_stats(entries)

        return UsageStatistics(
            total_cost=overall.total_cost,
            total_tokens=overall.total_tokens,
            total_sessions=overall.total_sessions,
            model_usage=tuple(self.aggregate_by_model(entries)),
            project_usage=tuple(self.aggregate_by_project(entries)),
            monthly_usage=tuple(self.aggregate_by_month(entries)),
            daily_usage=tuple(self.aggregate_by_day(entries)),
            hourly_usage=tuple(self.aggregate_by_hour(entries)),
            date_range=self.calculate_date_range(entries),
        )
