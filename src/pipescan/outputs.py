"""Run artifacts: console summary, dotenv outputs, JSON report.

Artifacts are written before the decision is taken so a failing job still
uploads them. Write failures are logged and never change the exit code.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pipescan.decision import summary_message
from pipescan.models import ConsolidatedReport

log = logging.getLogger(__name__)

_RULE = "=" * 50


def output_values(report: ConsolidatedReport) -> dict[str, str]:
    return {
        "VULNERABILITIES_FOUND": str(report.total),
        "CRITICAL_COUNT": str(report.critical),
        "HIGH_COUNT": str(report.high),
        "MEDIUM_COUNT": str(report.medium),
        "LOW_COUNT": str(report.low),
        "SCAN_RESULT": summary_message(report),
    }


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_dotenv(report: ConsolidatedReport, path: Path) -> bool:
    """Write ``KEY=value`` lines for CI dotenv artifacts."""
    content = "\n".join(f"{key}={value}" for key, value in output_values(report).items())
    try:
        _write(path, content + "\n")
    except OSError as exc:
        log.warning("Failed to write outputs to %s: %s", path, exc)
        return False
    log.info("Outputs written to %s", path)
    return True


def write_json_report(report: ConsolidatedReport, path: Path) -> bool:
    try:
        _write(path, json.dumps(report.to_dict(), indent=2, default=str))
    except OSError as exc:
        log.warning("Failed to write JSON report to %s: %s", path, exc)
        return False
    log.info("JSON report written to %s", path)
    return True


def read_json_report(path: Path) -> ConsolidatedReport:
    """Load a report written by :func:`write_json_report`."""
    return ConsolidatedReport.from_dict(json.loads(path.read_text(encoding="utf-8")))


def render_summary(report: ConsolidatedReport) -> list[str]:
    lines = [
        _RULE,
        "CONSOLIDATED VULNERABILITY REPORT",
        _RULE,
        f"   Total: {report.total}",
        f"   Critical: {report.critical}",
        f"   High: {report.high}",
        f"   Medium: {report.medium}",
        f"   Low: {report.low}",
        _RULE,
    ]
    if len(report.scanner_results) > 1:
        lines.append("Scanner breakdown:")
        for result in report.scanner_results:
            status = result.extras.get("status")
            suffix = f" [{status}]" if status else ""
            lines.append(f"   {result.scanner}{suffix}:")
            lines.append(f"      Total: {result.total}")
            lines.append(f"      Critical: {result.critical}, High: {result.high}")
    return lines


def log_summary(report: ConsolidatedReport) -> None:
    for line in render_summary(report):
        log.info(line)
