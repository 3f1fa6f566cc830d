"""Trivy vulnerability scanner adapter.

Wraps the ``trivy`` CLI (``fs``, ``sbom``, ``image``, ... scan kinds), reads
its JSON report, and normalizes ``Results[].Vulnerabilities[]`` into a
FindingSet.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from pipescan.adapters._common import read_report, validate_target
from pipescan.adapters._provision import ToolBinary
from pipescan.config import ScanConfig
from pipescan.defaults import TRIVY_SKIP_DIR_KINDS, TRIVY_SKIP_DIRS, TRIVY_SUCCESS_CODES
from pipescan.models import Finding, FindingKind, FindingSet, Location, Severity
from pipescan.process import run_tool, scratch_dir
from pipescan.reports import TrivyReport

log = logging.getLogger(__name__)


class TrivyScanner:
    scanner_name = "trivy"
    finding_kind = FindingKind.VULNERABILITY

    def __init__(self, binary: ToolBinary | None = None) -> None:
        self.binary = binary or ToolBinary("trivy")

    def install(self) -> Path:
        return self.binary.install()

    async def scan(self, config: ScanConfig) -> FindingSet:
        validate_target(config.target)
        binary = self.install()
        log.info(
            "Scanning %s (kind=%s, severity=%s)",
            config.target, config.scan_kind, config.severity_arg,
            extra={"scanner": self.scanner_name, "target": str(config.target)},
        )

        with scratch_dir("trivy-scan") as tmp:
            report_path = tmp / "results.json"
            run = await run_tool(
                build_command(binary, config, report_path),
                cwd=config.target.parent,
                timeout=config.timeout,
            )
            raw = read_report(
                run, report_path, tool=self.scanner_name,
                success_codes=TRIVY_SUCCESS_CODES,
            )
            result = parse_output(raw, self.scanner_name)

        log.info(
            "%s: %d total (%d critical, %d high, %d medium, %d low)",
            self.scanner_name, result.total, result.critical,
            result.high, result.medium, result.low,
        )
        return result


def build_command(binary: Path, config: ScanConfig, report_path: Path) -> list[str]:
    cmd = [
        str(binary), config.scan_kind,
        "--severity", config.severity_arg,
        "--format", "json",
        "--output", str(report_path),
        "--exit-code", "0",
        "--quiet",
    ]
    if config.ignore_unfixed:
        cmd.append("--ignore-unfixed")
    if config.scan_kind in TRIVY_SKIP_DIR_KINDS:
        cmd.extend(["--skip-dirs", TRIVY_SKIP_DIRS])
    cmd.append(str(config.target))
    return cmd


def parse_output(raw: str | None, scanner: str = "trivy") -> FindingSet:
    if raw is None or not raw.strip():
        log.warning("%s report is empty", scanner)
        return FindingSet.empty(scanner, FindingKind.VULNERABILITY)
    try:
        report = TrivyReport.model_validate_json(raw)
    except ValidationError:
        log.warning("Failed to parse %s JSON output", scanner)
        return FindingSet.empty(scanner, FindingKind.VULNERABILITY)

    if report.results is None:
        log.warning("No Results array in %s output", scanner)

    findings: list[Finding] = []
    targets: list[str] = []
    for result in report.results or []:
        if result.target:
            targets.append(result.target)
        vulns = result.vulnerabilities or []
        log.debug("%s (%s): %d vulnerabilities", result.target, result.type or "unknown", len(vulns))
        for vuln in vulns:
            findings.append(Finding(
                kind=FindingKind.VULNERABILITY,
                identifier=vuln.vulnerability_id,
                severity=Severity.from_tool(vuln.severity),
                location=Location(path=result.target) if result.target else None,
                text=vuln.title or vuln.vulnerability_id or "",
                raw=vuln.raw(),
            ))

    return FindingSet(
        scanner=scanner,
        kind=FindingKind.VULNERABILITY,
        findings=tuple(findings),
        extras={"targets": targets},
    )
