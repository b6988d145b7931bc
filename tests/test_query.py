from datetime import timezone
from pathlib import Path

import pytest

from tokentally.errors import NoDataFoundError
from tokentally.parser import LogRecordParser
from tokentally.pricing import SONNET_4, PricingEngine
from tokentally.query import UsageQuery


def _line(model: "str", timestamp: "str", project: "str", tokens: "int" = 1000) -> "str":
    return (
        f'{{"timestamp":"{timestamp}","cwd":"{project}","type":"assistant",'
        f'"message":{{"model":"{model}","usage":{{"input_tokens":{tokens},'
        f'"output_tokens":{tokens}}}}}}}'
    )


@pytest.fixture()
def log_root(tmp_path: "Path") -> "Path":
    alpha = tmp_path / "-Users-test-alpha"
    beta = tmp_path / "-Users-test-beta"
    alpha.mkdir()
    beta.mkdir()

    (alpha / "s1.jsonl").write_text(
        "\n".join(
            [
                _line("claude-sonnet-4-20250514", "2025-01-15T10:30:00Z", "/Users/test/alpha"),
                _line("claude-opus-4-20250514", "2025-01-16T14:45:00Z", "/Users/test/alpha"),
                '{"type":"user","timestamp":"2025-01-16T14:44:00Z","cwd":"/Users/test/alpha"}',
            ]
        ),
        encoding="utf-8",
    )
    (beta / "s2.jsonl").write_text(
        _line("claude-haiku-3.5", "2025-02-01T09:15:00Z", "/Users/test/beta", tokens=10)
        + "\n",
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture()
def query(log_root: "Path") -> "UsageQuery":
    return UsageQuery(root=log_root, tz=timezone.utc)


class TestUsageStatistics:
    def test_loads_all_files(self, query: "UsageQuery") -> "None":
        stats = query.get_usage_statistics()
        assert stats.total_sessions == 3
        assert {m.model for m in stats.model_usage} == {
            "claude-sonnet-4-20250514",
            "claude-opus-4-20250514",
            "claude-haiku-3.5",
        }
        assert stats.date_range.start == "2025-01-15T10:30:00Z"
        assert stats.date_range.end == "2025-02-01T09:15:00Z"

    def test_no_data_raises(self, tmp_path: "Path") -> "None":
        with pytest.raises(NoDataFoundError):
            UsageQuery(root=tmp_path).get_usage_statistics()

    def test_missing_root_raises_no_data(self, tmp_path: "Path") -> "None":
        with pytest.raises(NoDataFoundError):
            UsageQuery(root=tmp_path / "missing").get_usage_statistics()

    def test_totals(self, query: "UsageQuery") -> "None":
        assert query.get_total_sessions() == 3
        assert query.get_total_tokens() == 4020
        assert query.get_total_spending() == pytest.approx(
            query.get_usage_statistics().total_cost
        )

    def test_totals_surface_no_data(self, tmp_path: "Path") -> "None":
        with pytest.raises(NoDataFoundError):
            UsageQuery(root=tmp_path).get_total_spending()

    def test_uses_given_pricing_engine(self, log_root: "Path") -> "None":
        engine = PricingEngine()
        engine.set_pricing_function("claude-haiku-3.5", lambda usage, model: 100.0)
        query = UsageQuery(root=log_root, pricing=engine)
        assert query.get_top_models(limit=1)[0].model == "claude-haiku-3.5"


class TestFilteredQueries:
    def test_by_month(self, query: "UsageQuery") -> "None":
        result = query.get_usage_by_month("2025-01")
        assert len(result) == 1
        assert result[0].session_count == 2

    def test_by_month_range(self, query: "UsageQuery") -> "None":
        result = query.get_usage_by_month_range("2025-01", "2025-02")
        assert [m.month for m in result] == ["2025-02", "2025-01"]
        assert query.get_usage_by_month_range("2025-03", "2025-12") == []

    def test_by_project(self, query: "UsageQuery") -> "None":
        result = query.get_usage_by_project("/Users/test/beta")
        assert len(result) == 1
        assert result[0].project_name == "beta"
        assert result[0].session_count == 1

    def test_by_model(self, query: "UsageQuery") -> "None":
        result = query.get_usage_by_model("claude-opus-4-20250514")
        assert len(result) == 1
        assert result[0].input_tokens == 1000

    def test_by_date_range(self, query: "UsageQuery") -> "None":
        stats = query.get_usage_by_date_range(
            "2025-01-16T00:00:00Z", "2025-02-01T09:15:00Z"
        )
        assert stats.total_sessions == 2

    def test_daily_and_hourly(self, query: "UsageQuery") -> "None":
        assert [d.date for d in query.get_daily_usage()] == [
            "2025-02-01",
            "2025-01-16",
            "2025-01-15",
        ]
        assert [d.date for d in query.get_daily_usage_for_month("2025-02")] == [
            "2025-02-01"
        ]
        assert query.get_hourly_usage()[0].hour == "2025-02-01T09"

    def test_project_and_month(self, query: "UsageQuery") -> "None":
        stats = query.get_usage_by_project_and_month("/Users/test/alpha", "2025-01")
        assert stats.total_sessions == 2
        empty = query.get_usage_by_project_and_month("/Users/test/alpha", "2025-02")
        assert empty.total_sessions == 0

    def test_model_and_month(self, query: "UsageQuery") -> "None":
        stats = query.get_usage_by_model_and_month("claude-haiku-3.5", "2025-02")
        assert stats.total_sessions == 1
        assert stats.total_tokens == 20

    def test_filtered_queries_degrade_on_missing_root(self, tmp_path: "Path") -> "None":
        query = UsageQuery(root=tmp_path / "missing")
        assert query.get_usage_by_month("2025-01") == []
        assert query.get_all_project_usage() == []
        assert query.get_usage_by_date_range(
            "2025-01-01T00:00:00Z", "2025-12-31T00:00:00Z"
        ).total_sessions == 0


class TestRankings:
    def test_top_projects(self, query: "UsageQuery") -> "None":
        top = query.get_top_projects(limit=1)
        assert [p.project_path for p in top] == ["/Users/test/alpha"]
        assert len(query.get_top_projects()) == 2

    def test_top_models(self, query: "UsageQuery") -> "None":
        top = query.get_top_models(limit=2)
        assert [m.model for m in top] == [
            "claude-opus-4-20250514",
            "claude-sonnet-4-20250514",
        ]


class TestDiscovery:
    def test_projects(self, query: "UsageQuery") -> "None":
        assert query.discover_available_projects() == [
            "/Users/test/alpha",
            "/Users/test/beta",
        ]

    def test_models(self, query: "UsageQuery") -> "None":
        assert query.discover_available_models() == [
            "claude-haiku-3.5",
            "claude-opus-4-20250514",
            "claude-sonnet-4-20250514",
        ]

    def test_months_are_most_recent_first(self, query: "UsageQuery") -> "None":
        assert query.discover_available_months() == ["2025-02", "2025-01"]

    def test_degrades_to_empty(self, tmp_path: "Path") -> "None":
        query = UsageQuery(root=tmp_path / "missing")
        assert query.discover_available_projects() == []
        assert query.discover_available_models() == []
        assert query.discover_available_months() == []

    def test_degrades_when_loading_fails(
        self, query: "UsageQuery", monkeypatch: "pytest.MonkeyPatch"
    ) -> "None":
        def _boom(root: "object") -> "list":
            raise PermissionError("denied")

        monkeypatch.setattr(query.parser, "parse_all", _boom)
        assert query.discover_available_models() == []
        with pytest.raises(PermissionError):
            query.get_usage_statistics()


class TestPricingPassthrough:
    def test_pricing_helpers(self, tmp_path: "Path") -> "None":
        query = UsageQuery(root=tmp_path, parser=LogRecordParser(strict=True))
        assert len(query.supported_models()) > 0
        assert query.is_model_supported("claude-sonnet-4-20250514")
        assert query.pricing_info("claude-sonnet-4-20250514") == SONNET_4
        assert query.pricing_info("unknown-model") is None
