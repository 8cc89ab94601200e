"""Result formatting and summary reports."""

import io
import json

import pytest

from src.models.exceptions import OutputException
from src.models.response import Request, CachedResponse, ResponseSource
from src.models.result import Resolution, ResolutionSummary
from src.models.traffic import TrafficClass
from src.utils.output_formatter import OutputFormatter, ResultSerializer


@pytest.fixture
def results():
    hit = CachedResponse.snapshot(200, b"cached", url="https://app.test/main.js").with_source(ResponseSource.CACHE)
    fallback = CachedResponse.fallback(503, "API not available", url="https://app.test/api/user")
    return [
        Resolution(Request("https://app.test/main.js"), TrafficClass.STATIC_ASSET, hit, duration=0.0012),
        Resolution(Request("https://app.test/api/user"), TrafficClass.API_REQUEST, fallback, duration=0.5),
        Resolution(Request("https://app.test/about"), TrafficClass.UNHANDLED),
    ]


class TestOutputFormatter:
    def test_tsv_row(self, results):
        row = OutputFormatter().format_result(results[0], "tsv")
        assert row.split("\t") == ["GET", "https://app.test/main.js", "static", "200", "cache", "6", "1.2"]

    def test_tsv_passthrough_row(self, results):
        row = OutputFormatter().format_result(results[2], "tsv")
        assert row.split("\t")[3:6] == ["-", "passthrough", "-"]

    def test_csv_row_and_header(self, results):
        formatter = OutputFormatter()
        assert formatter.get_header("csv") == "method,url,traffic_class,status,source,size,duration_ms"
        assert formatter.format_result(results[1], "csv") == "GET,https://app.test/api/user,api,503,fallback,17,500.0"

    def test_jsonl_row(self, results):
        data = json.loads(OutputFormatter().format_result(results[1], "jsonl"))
        assert data["is_fallback"] is True
        assert data["status"] == 503

    def test_unsupported_format(self, results):
        with pytest.raises(OutputException):
            OutputFormatter().format_result(results[0], "xml")


class TestResultSerializer:
    def test_tsv_with_header(self, results):
        out = io.StringIO()
        ResultSerializer().serialize_to_file(results, out, "tsv")
        lines = out.getvalue().splitlines()
        assert lines[0] == Resolution.get_tsv_header()
        assert len(lines) == 4

    def test_intercepted_only(self, results):
        out = io.StringIO()
        ResultSerializer().serialize_to_file(results, out, "jsonl", intercepted_only=True)
        assert len(out.getvalue().splitlines()) == 2

    def test_json_document(self, results):
        out = io.StringIO()
        ResultSerializer().serialize_to_file(results, out, "json")
        data = json.loads(out.getvalue())
        assert [d["source"] for d in data] == ["cache", "fallback", "passthrough"]
        assert data[0]["response"]["size"] == 6

    def test_text_summary(self, results):
        summary = ResolutionSummary(
            run_id="run_1",
            start_time=100.0,
            end_time=102.0,
            installed=True,
            namespace_sizes={"app-static-v2": 6},
            results=results,
        )
        report = ResultSerializer().create_summary_report(summary)

        assert "SWCache Resolution Summary" in report
        assert "Cache Hits: 1 (50.0% of intercepted)" in report
        assert "Fallbacks: 1" in report
        assert "app-static-v2: 6 entries" in report
        assert summary.requests_per_second == 1.5

    def test_json_summary(self, results):
        summary = ResolutionSummary(run_id="run_2", start_time=0.0, end_time=1.0, results=results)
        data = json.loads(ResultSerializer().create_summary_report(summary, "json"))
        assert data["class_distribution"]["unhandled"] == 1
        assert data["hit_rate"] == 0.5
