"""Report writer - persist comparison runs as JSON and Markdown artifacts."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Tuple

from rpc_compare.comparison.diff import format_differences
from rpc_compare.domain.models import Classification

logger = logging.getLogger(__name__)

JSON_REPORT_NAME = "comparison-results.json"
MARKDOWN_REPORT_NAME = "SUMMARY.md"

_STATUS_LABELS = {
    Classification.MATCH: "MATCH",
    Classification.DIFFER: "DIFFER",
    Classification.SCHEMA_ERROR: "SCHEMA ERROR",
    Classification.CALL_ERROR: "CALL ERROR",
}


class ReportWriter:
    """Generate comparison artifacts (JSON + Markdown) in an output directory."""

    def __init__(self, output_dir: Path | str) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate_json_report(self, run) -> str:
        return json.dumps(run.to_dict(), indent=2, default=str)

    def generate_markdown_summary(self, run) -> str:
        summary = run.summary
        md_lines = [
            f"# {run.name}",
            f"**Endpoints:** {', '.join(run.endpoints)}",
            f"**Generated:** {datetime.now().isoformat()}",
            "",
            "## Summary",
            f"- **Total Methods:** {summary.total_methods}",
            f"- **Total Comparisons:** {summary.total_comparisons}",
            f"- **Matches:** {summary.matches}",
            f"- **Differences:** {summary.differences}",
            f"- **Schema Errors:** {summary.schema_errors}",
            f"- **Call Errors:** {summary.call_errors}",
            f"- **Match Rate:** {summary.match_percentage():.1f}%",
            "",
        ]

        for namespace, methods in run.scopes().items():
            md_lines.append(f"## Scope: {namespace}")
            md_lines.append("")
            md_lines.append("| Variant | Result | Diffs |")
            md_lines.append("|---|---|---|")
            for records in methods.values():
                for record in records:
                    md_lines.append(
                        f"| {record.variant_label} | {_STATUS_LABELS[record.classification]} "
                        f"| {len(record.diffs)} |"
                    )
            md_lines.append("")

        problem_records = [
            record for record in run.records if record.classification is not Classification.MATCH
        ]
        if problem_records:
            md_lines.append("## Details")
            md_lines.append("")
            for record in problem_records:
                md_lines.append(f"### {record.variant_label}")
                md_lines.append(f"Params: `{json.dumps(record.descriptor.params_list())}`")
                md_lines.append("")
                for name, error in sorted(record.transport_errors.items()):
                    md_lines.append(f"- **{name}** call failed: {error}")
                for name, violation in sorted(record.schema_violations.items()):
                    for message in violation.messages:
                        md_lines.append(f"- **{name}** schema: {message}")
                if record.diffs:
                    md_lines.append("")
                    md_lines.append("```")
                    md_lines.append(format_differences(record.diffs))
                    md_lines.append("```")
                md_lines.append("")
        else:
            md_lines.append("All endpoints agree.")

        return "\n".join(md_lines)

    def write_json(self, run, filename: str = JSON_REPORT_NAME) -> Path:
        json_path = self.output_dir / filename
        json_path.write_text(self.generate_json_report(run), encoding="utf-8")
        logger.info("Wrote comparison results: %s", json_path)
        return json_path

    def write_markdown(self, run, filename: str = MARKDOWN_REPORT_NAME) -> Path:
        md_path = self.output_dir / filename
        md_path.write_text(self.generate_markdown_summary(run), encoding="utf-8")
        logger.info("Wrote comparison summary: %s", md_path)
        return md_path

    def write_reports(self, run) -> Tuple[Path, Path]:
        return self.write_json(run), self.write_markdown(run)
