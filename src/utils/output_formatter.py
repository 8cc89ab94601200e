import io
import json
import csv
from typing import List, TextIO

from ..models.exceptions import OutputException
from ..models.result import Resolution, ResolutionSummary

CSV_HEADER = ["method", "url", "traffic_class", "status", "source", "size", "duration_ms"]


class OutputFormatter:
    def __init__(self):
        self.supported_formats = ["tsv", "json", "jsonl", "csv"]

    def format_result(self, result: Resolution, format_type: str = "tsv") -> str:
        format_type = format_type.lower()
        if format_type == "tsv":
            return result.to_tsv()
        if format_type == "json":
            return json.dumps(result.to_dict(include_details=True), indent=2, ensure_ascii=False)
        if format_type == "jsonl":
            return json.dumps(result.to_dict(), ensure_ascii=False)
        if format_type == "csv":
            return self._format_csv(result)
        raise OutputException(f"Unsupported format: {format_type}", output_format=format_type)

    def format_results(self, results: List[Resolution], format_type: str = "tsv") -> List[str]:
        format_type = format_type.lower()
        if format_type == "json":
            data = [r.to_dict(include_details=True) for r in results]
            return [json.dumps(data, indent=2, ensure_ascii=False)]
        return [self.format_result(r, format_type) for r in results]

    def _format_csv(self, result: Resolution) -> str:
        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)
        writer.writerow([
            result.request.method,
            result.request.url,
            result.traffic_class.value,
            result.status if result.intercepted else "",
            result.source.value,
            result.response.size if result.response is not None else "",
            f"{result.duration * 1000:.1f}",
        ])
        return output.getvalue().strip()

    def get_header(self, format_type: str = "tsv") -> str:
        format_type = format_type.lower()
        if format_type == "tsv":
            return Resolution.get_tsv_header()
        if format_type == "csv":
            return ",".join(CSV_HEADER)
        return ""


class ResultSerializer:
    def __init__(self):
        self.formatter = OutputFormatter()

    def serialize_to_file(
        self,
        results: List[Resolution],
        output_file: TextIO,
        format_type: str = "tsv",
        include_header: bool = True,
        intercepted_only: bool = False,
    ):
        rows = [r for r in results if r.intercepted] if intercepted_only else list(results)

        ft = format_type.lower()
        if ft == "json":
            data = [r.to_dict(include_details=True) for r in rows]
            json.dump(data, output_file, indent=2, ensure_ascii=False)
            output_file.write("\n")
            return

        if include_header and ft in ("tsv", "csv"):
            output_file.write(self.formatter.get_header(ft) + "\n")

        for r in rows:
            output_file.write(self.formatter.format_result(r, ft) + "\n")

    def create_summary_report(self, summary: ResolutionSummary, format_type: str = "text") -> str:
        return summary.to_json() if format_type.lower() == "json" else self._create_text_summary(summary)

    def _create_text_summary(self, summary: ResolutionSummary) -> str:
        lines: List[str] = []
        lines.append("=" * 60)
        lines.append("SWCache Resolution Summary")
        lines.append("=" * 60)
        lines.append(f"Run ID: {summary.run_id}")
        lines.append(f"Duration: {summary.total_duration:.2f} seconds")
        lines.append(f"Installed: {'yes' if summary.installed else 'no'}")
        lines.append(f"Requests: {summary.total_requests}")
        lines.append(f"Cache Hits: {summary.cache_hits} ({summary.hit_rate:.1%} of intercepted)")
        lines.append(f"Fallbacks: {summary.fallbacks}")

        lines.append("\nTraffic Classes:")
        for name, count in summary.class_distribution.items():
            if count > 0:
                lines.append(f"  {name}: {count}")

        lines.append("\nSources:")
        for name, count in summary.source_distribution.items():
            if count > 0:
                lines.append(f"  {name}: {count}")

        lines.append("\nCaches:")
        if summary.namespace_sizes:
            for name in sorted(summary.namespace_sizes):
                lines.append(f"  {name}: {summary.namespace_sizes[name]} entries")
        else:
            lines.append("  (none)")
        lines.append(f"\nPerformance: {summary.requests_per_second:.1f} requests/second")
        lines.append("=" * 60)
        return "\n".join(lines)


output_formatter = OutputFormatter()
result_serializer = ResultSerializer()
