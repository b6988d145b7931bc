from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from tokentally.models import UsageStatistics


def create_usage_metrics(
    registry: "CollectorRegistry" = REGISTRY,
) -> "dict[str, Gauge]":
    """
    creates the gauge families mirroring a UsageStatistics value.
     - cost_usd / tokens / sessions: overall totals.
     - model_*: per model; tokens are split by kind
     (input, output, cache_write, cache_read).
     - project_*: per project path, with the display name.
     - monthly_cost_usd: per "YYYY-MM" month.
    """
    return {
        "cost_usd": Gauge(
            "tokentally_cost_usd",
            "Total cost in USD across all usage logs",
            registry=registry,
        ),
        "tokens": Gauge(
            "tokentally_tokens",
            "Total tokens across all usage logs",
            registry=registry,
        ),
        "sessions": Gauge(
            "tokentally_sessions",
            "Total usage entries across all usage logs",
            registry=registry,
        ),
        "model_cost_usd": Gauge(
            "tokentally_model_cost_usd",
            "Cost in USD by model",
            ["model"],
            registry=registry,
        ),
        "model_tokens": Gauge(
            "tokentally_model_tokens",
            "Tokens by model and kind",
            ["model", "kind"],
            registry=registry,
        ),
        "model_sessions": Gauge(
            "tokentally_model_sessions",
            "Usage entries by model",
            ["model"],
            registry=registry,
        ),
        "project_cost_usd": Gauge(
            "tokentally_project_cost_usd",
            "Cost in USD by project",
            ["project", "project_name"],
            registry=registry,
        ),
        "project_tokens": Gauge(
            "tokentally_project_tokens",
            "Tokens by project",
            ["project", "project_name"],
            registry=registry,
        ),
        "monthly_cost_usd": Gauge(
            "tokentally_monthly_cost_usd",
            "Cost in USD by month",
            ["month"],
            registry=registry,
        ),
    }


class MetricsUpdater:
    """
    publishes the latest UsageStatistics to Prometheus gauges.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._registry: "CollectorRegistry" = registry
        self._usage: "dict[str, Gauge]" = create_usage_metrics(registry)
        self._refresh_duration: "Histogram" = Histogram(
            "tokentally_refresh_duration_seconds",
            "Duration of usage refresh cycles",
            registry=registry,
        )
        self._refresh_errors: "Counter" = Counter(
            "tokentally_refresh_errors_total",
            "Total number of refresh errors by stage",
            ["stage"],
            registry=registry,
        )
        self._last_refresh_success: "Gauge" = Gauge(
            "tokentally_last_refresh_success_timestamp_seconds",
            "Unix timestamp of the last successful refresh",
            registry=registry,
        )

    def update(self, stats: "UsageStatistics") -> "None":
        """
        replaces every usage series with the values in stats.
        Labelled series are cleared first so models and projects
        that no longer appear are dropped.
        """
        m = self._usage
        m["cost_usd"].set(stats.total_cost)
        m["tokens"].set(stats.total_tokens)
        m["sessions"].set(stats.total_sessions)

        for name in (
            "model_cost_usd",
            "model_tokens",
            "model_sessions",
            "project_cost_usd",
            "project_tokens",
            "monthly_cost_usd",
        ):
            m[name].clear()

        for model in stats.model_usage:
            m["model_cost_usd"].labels(model=model.model).set(model.total_cost)
            m["model_sessions"].labels(model=model.model).set(model.session_count)
            for kind, value in (
                ("input", model.input_tokens),
                ("output", model.output_tokens),
                ("cache_write", model.cache_creation_tokens),
                ("cache_read", model.cache_read_tokens),
            ):
                m["model_tokens"].labels(model=model.model, kind=kind).set(value)

        for project in stats.project_usage:
            labels = {
                "project": project.project_path,
                "project_name": project.project_name,
            }
            m["project_cost_usd"].labels(**labels).set(project.total_cost)
            m["project_tokens"].labels(**labels).set(project.total_tokens)

        for month in stats.monthly_usage:
            m["monthly_cost_usd"].labels(month=month.month).set(month.total_cost)

    def observe_refresh_duration(self, duration_seconds: "float") -> "None":
        self._refresh_duration.observe(duration_seconds)

    def inc_refresh_error(self, stage: "str") -> "None":
        self._refresh_errors.labels(stage=stage).inc()

    def set_last_refresh_success(self, timestamp: "float") -> "None":
        self._last_refresh_success.set(timestamp)
