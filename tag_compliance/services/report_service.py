# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Report generation service."""

import html
import json
import logging
from pathlib import Path

from ..models import ReportFormat, TagOrigin, ValidationResult
from .remediation_service import RemediationService

logger = logging.getLogger(__name__)

_HTML_STYLE = """
body { font-family: -apple-system, "Segoe UI", Roboto, sans-serif; margin: 2rem; color: #212529; }
h1, h2 { font-weight: 500; }
table { border-collapse: collapse; width: 100%; margin-bottom: 1.5rem; }
th, td { border: 1px solid #dee2e6; padding: .5rem; text-align: left; vertical-align: top; }
th { background: #f8f9fa; }
.pass { color: #198754; } .fail { color: #dc3545; } .exempt { color: #fd7e14; }
.resource { color: #0d6efd; } .provider_default { color: #6f42c1; } .module_call { color: #20c997; }
pre { background: #f8f9fa; padding: .75rem; }
"""


class ReportService:
    """
    Service for rendering validation results.

    Supports JSON, Markdown and standalone HTML output. HTML output escapes
    every value taken from the scanned configuration.
    """

    def __init__(self, remediation_service: RemediationService | None = None):
        self.remediation_service = remediation_service or RemediationService()

    def format_report(
        self, result: ValidationResult, format: ReportFormat, include_remediation: bool = False
    ) -> str:
        """
        Format a validation result in the specified output format.

        Args:
            result: ValidationResult to format
            format: Output format (JSON, Markdown or HTML)
            include_remediation: Add suggested snippets for each violation

        Returns:
            Formatted report as a string
        """
        if format == ReportFormat.JSON:
            return self._format_as_json(result, include_remediation)
        elif format == ReportFormat.MARKDOWN:
            return self._format_as_markdown(result, include_remediation)
        elif format == ReportFormat.HTML:
            return self._format_as_html(result, include_remediation)
        else:
            raise ValueError(f"Unsupported report format: {format}")

    def write_report(
        self,
        result: ValidationResult,
        path: str | Path,
        format: ReportFormat | None = None,
        include_remediation: bool = False,
    ) -> Path:
        """Write a report to disk, inferring the format from the extension if not given."""
        path = Path(path)
        if format is None:
            format = {
                ".json": ReportFormat.JSON,
                ".md": ReportFormat.MARKDOWN,
            }.get(path.suffix.lower(), ReportFormat.HTML)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.format_report(result, format, include_remediation), encoding="utf-8")
        logger.info(f"Wrote {format.value} report to {path}")
        return path

    def summarize(self, result: ValidationResult) -> dict:
        """Headline numbers, derived counters included."""
        stats = result.stats
        return {
            "passed": result.passed,
            "total_resources": stats.total_resources,
            "compliant_resources": stats.compliant_resources,
            "non_compliant_resources": stats.non_compliant_resources,
            "fully_exempt_resources": stats.fully_exempt_resources,
            "partially_exempt_resources": stats.partially_exempt_resources,
            "excluded_resources_count": stats.excluded_resources_count,
            "compliance_percentage": round(stats.compliance_percentage, 2),
        }

    def _remediations(self, result: ValidationResult) -> list[tuple[str, str]]:
        snippets = []
        for violation in result.violations:
            snippet = self.remediation_service.remediate(violation, result)
            if snippet:
                snippets.append((f"{violation.resource_type}.{violation.resource_name}", snippet))
        return snippets

    def _format_as_json(self, result: ValidationResult, include_remediation: bool) -> str:
        report_dict = result.model_dump(mode="json")
        report_dict["summary"] = self.summarize(result)
        if include_remediation:
            report_dict["remediation"] = dict(self._remediations(result))
        return json.dumps(report_dict, indent=2)

    def _format_as_markdown(self, result: ValidationResult, include_remediation: bool) -> str:
        """
        Format result as Markdown.

        Sections: summary, violations table, per-tag counts and, optionally,
        remediation snippets.
        """
        summary = self.summarize(result)
        stats = result.stats
        lines = []

        lines.append("# Tag Compliance Report")
        lines.append("")
        lines.append(f"**Scan Date:** {result.scan_timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append(f"**Result:** {'PASSED' if result.passed else 'FAILED'}")
        lines.append("")

        lines.append("## Summary")
        lines.append("")
        lines.append(f"- **Compliance:** {summary['compliance_percentage']:.1f}%")
        lines.append(f"- **Total Resources:** {summary['total_resources']}")
        lines.append(f"- **Compliant Resources:** {summary['compliant_resources']}")
        lines.append(f"- **Non-Compliant Resources:** {summary['non_compliant_resources']}")
        lines.append(f"- **Fully Exempt Resources:** {summary['fully_exempt_resources']}")
        lines.append(f"- **Partially Exempt Resources:** {summary['partially_exempt_resources']}")
        if stats.excluded_resources_count:
            excluded = ", ".join(stats.excluded_resource_types)
            lines.append(
                f"- **Excluded Resources:** {stats.excluded_resources_count} ({excluded})"
            )
        lines.append("")

        if result.violations:
            lines.append("## Violations")
            lines.append("")
            lines.append("| Resource | Path | Missing Tags | Invalid Values | Status |")
            lines.append("|----------|------|--------------|----------------|--------|")
            for v in result.violations:
                invalid = ", ".join(f"{p.tag_name}={p.value}" for p in v.pattern_violations)
                status = v.classification.value
                if v.is_exempt and v.exempt_reason:
                    status = f"{status} ({v.exempt_reason})"
                lines.append(
                    f"| {v.resource_type}.{v.resource_name} | {v.resource_path} | "
                    f"{', '.join(v.missing_tags)} | {invalid} | {status} |"
                )
            lines.append("")

        if stats.violations_by_tag or stats.pattern_violations_by_tag:
            lines.append("## Violations by Tag")
            lines.append("")
            lines.append("| Tag Name | Missing | Invalid Value |")
            lines.append("|----------|---------|---------------|")
            tag_names = list(dict.fromkeys([*stats.violations_by_tag, *stats.pattern_violations_by_tag]))
            for tag_name in tag_names:
                lines.append(
                    f"| {tag_name} | {stats.violations_by_tag.get(tag_name, 0)} | "
                    f"{stats.pattern_violations_by_tag.get(tag_name, 0)} |"
                )
            lines.append("")

        if include_remediation:
            snippets = self._remediations(result)
            if snippets:
                lines.append("## Remediation")
                lines.append("")
                for address, snippet in snippets:
                    lines.append(f"### {address}")
                    lines.append("")
                    lines.append("```hcl")
                    lines.append(snippet)
                    lines.append("```")
                    lines.append("")

        return "\n".join(lines)

    def _format_as_html(self, result: ValidationResult, include_remediation: bool) -> str:
        """Format result as a standalone HTML page."""
        esc = html.escape
        summary = self.summarize(result)
        status_class = "pass" if result.passed else "fail"
        parts = [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '<meta charset="utf-8">',
            "<title>Tag Compliance Report</title>",
            f"<style>{_HTML_STYLE}</style>",
            "</head>",
            "<body>",
            "<h1>Tag Compliance Report</h1>",
            f"<p>Generated {esc(result.scan_timestamp.strftime('%Y-%m-%d %H:%M:%S UTC'))}: "
            f'<strong class="{status_class}">{"PASSED" if result.passed else "FAILED"}</strong></p>',
            "<h2>Summary</h2>",
            "<table>",
        ]
        for label, key in (
            ("Compliance", "compliance_percentage"),
            ("Total resources", "total_resources"),
            ("Compliant", "compliant_resources"),
            ("Non-compliant", "non_compliant_resources"),
            ("Fully exempt", "fully_exempt_resources"),
            ("Partially exempt", "partially_exempt_resources"),
            ("Excluded", "excluded_resources_count"),
        ):
            value = f"{summary[key]:.1f}%" if key == "compliance_percentage" else summary[key]
            parts.append(f"<tr><th>{label}</th><td>{value}</td></tr>")
        parts.append("</table>")

        if result.violations:
            parts.append("<h2>Violations</h2>")
            parts.append(
                "<table><tr><th>Resource</th><th>Path</th><th>Missing tags</th>"
                "<th>Invalid values</th><th>Status</th></tr>"
            )
            for v in result.violations:
                invalid = "<br>".join(esc(p.message or p.tag_name) for p in v.pattern_violations)
                css = "exempt" if v.is_exempt else "fail"
                reason = f"<br>{esc(v.exempt_reason)}" if v.exempt_reason else ""
                parts.append(
                    f"<tr><td>{esc(v.resource_type)}.{esc(v.resource_name)}</td>"
                    f"<td>{esc(v.resource_path)}</td>"
                    f"<td>{esc(', '.join(v.missing_tags))}</td>"
                    f"<td>{invalid}</td>"
                    f'<td class="{css}">{esc(v.classification.value)}{reason}</td></tr>'
                )
            parts.append("</table>")

        if result.resources:
            parts.append("<h2>Resources</h2>")
            parts.append("<table><tr><th>Resource</th><th>Path</th><th>Tags</th></tr>")
            for resource in result.resources:
                tags = "<br>".join(
                    f'{esc(key)} = {esc(source.value)} <span class="{source.origin.value}">'
                    f"({esc(_origin_label(source.origin))})</span>"
                    for key, source in resource.tag_sources.items()
                )
                parts.append(
                    f"<tr><td>{esc(resource.type)}.{esc(resource.name)}</td>"
                    f"<td>{esc(resource.path)}</td><td>{tags}</td></tr>"
                )
            parts.append("</table>")

        if include_remediation:
            snippets = self._remediations(result)
            if snippets:
                parts.append("<h2>Remediation</h2>")
                for address, snippet in snippets:
                    parts.append(f"<h3>{esc(address)}</h3>")
                    parts.append(f"<pre>{esc(snippet)}</pre>")

        parts += ["</body>", "</html>"]
        return "\n".join(parts)


def _origin_label(origin: TagOrigin) -> str:
    return {
        TagOrigin.RESOURCE: "resource",
        TagOrigin.PROVIDER_DEFAULT: "provider default",
        TagOrigin.MODULE_CALL: "module",
    }[origin]
