from typing import Callable

import pytest
from prometheus_client import CollectorRegistry

from tokentally.models import UsageCounts, UsageEntry

# two assistant responses as Claude Code writes them, with
# model and usage nested under "message" and the project in "cwd"
SAMPLE_JSONL = (
    '{"parentUuid":"590200dc","isSidechain":false,"userType":"external",'
    '"cwd":"/Users/test/openapi-mcp","sessionId":"692ca49d","version":"1.0.51",'
    '"message":{"id":"msg_013S","type":"message","role":"assistant",'
    '"model":"claude-sonnet-4-20250514","content":[],"stop_reason":null,'
    '"usage":{"input_tokens":3,"cache_creation_input_tokens":363,'
    '"cache_read_input_tokens":21100,"output_tokens":400,"service_tier":"standard"}},'
    '"type":"assistant","uuid":"d5f5d345","timestamp":"2025-07-15T08:48:03.470Z"}\n'
    '{"cwd":"/Users/test/openapi-mcp","sessionId":"692ca49d",'
    '"message":{"id":"msg_014S","role":"assistant","model":"claude-opus-4-20250514",'
    '"usage":{"input_tokens":5000,"cache_creation_input_tokens":0,'
    '"cache_read_input_tokens":0,"output_tokens":1500}},'
    '"type":"assistant","timestamp":"2025-07-15T09:30:03.470Z"}\n'
)


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def sample_content() -> "str":
    return SAMPLE_JSONL


@pytest.fixture()
def sonnet_entry() -> "UsageEntry":
    return UsageEntry(
        model="claude-sonnet-4-20250514",
        usage=UsageCounts(
            input_tokens=3,
            output_tokens=400,
            cache_creation_input_tokens=363,
            cache_read_input_tokens=21100,
        ),
        timestamp="2025-07-15T08:48:03.470Z",
        project_path="/Users/test/openapi-mcp",
    )


def make_entry(
    timestamp: "str",
    model: "str" = "claude-sonnet-4-20250514",
    project_path: "str" = "/Users/test/project1",
    input_tokens: "int | None" = 100,
    output_tokens: "int | None" = 50,
    cache_write: "int | None" = None,
    cache_read: "int | None" = None,
) -> "UsageEntry":
    return UsageEntry(
        model=model,
        usage=UsageCounts(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cache_creation_input_tokens=cache_write,
            cache_read_input_tokens=cache_read,
        ),
        timestamp=timestamp,
        project_path=project_path,
    )


@pytest.fixture()
def entry_factory() -> "Callable[..., UsageEntry]":
    return make_entry
