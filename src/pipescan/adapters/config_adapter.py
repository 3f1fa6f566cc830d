"""Trivy IaC misconfiguration adapter.

Runs ``trivy config`` and normalizes ``Results[].Misconfigurations[]`` into a
FindingSet. Shares the trivy binary with the vulnerability adapter.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from pipescan.adapters._common import read_report, validate_target
from pipescan.adapters._provision import ToolBinary
from pipescan.config import ScanConfig
from pipescan.defaults import TRIVY_SUCCESS_CODES
from pipescan.models import Finding, FindingKind, FindingSet, Location, Severity
from pipescan.process import run_tool, scratch_dir
from pipescan.reports import TrivyReport

log = logging.getLogger(__name__)


class TrivyConfigScanner:
    scanner_name = "trivy-config"
    finding_kind = FindingKind.MISCONFIGURATION

    def __init__(self, binary: ToolBinary | None = None) -> None:
        self.binary = binary or ToolBinary("trivy")

    def install(self) -> Path:
        return self.binary.install()

    async def scan(self, config: ScanConfig) -> FindingSet:
        validate_target(config.target)
        binary = self.install()
        log.info("Scanning configuration files in %s", config.target)

        with scratch_dir("trivy-config") as tmp:
            report_path = tmp / "results.json"
            cmd = [
                str(binary), "config",
                "--format", "json",
                "--output", str(report_path),
                "--severity", config.severity_arg,
                str(config.target),
            ]
            run = await run_tool(cmd, cwd=config.target.parent, timeout=config.timeout)
            raw = read_report(
                run, report_path, tool=self.scanner_name,
                success_codes=TRIVY_SUCCESS_CODES,
            )
            result = parse_output(raw, self.scanner_name)

        files = result.extras.get("files", [])
        if files:
            log.info("Detected %d config files", len(files))
            for index, name in enumerate(files, 1):
                log.debug("  %d. %s", index, name)
        return result


def parse_output(raw: str | None, scanner: str = "trivy-config") -> FindingSet:
    if raw is None or not raw.strip():
        return FindingSet.empty(
            scanner, FindingKind.MISCONFIGURATION, total_files=0, files=[],
        )
    try:
        report = TrivyReport.model_validate_json(raw)
    except ValidationError:
        log.warning("Failed to parse %s JSON output", scanner)
        return FindingSet.empty(
            scanner, FindingKind.MISCONFIGURATION, total_files=0, files=[],
        )

    files: list[str] = []
    findings: list[Finding] = []
    for result in report.results or []:
        if result.target:
            files.append(result.target)
        for misconfig in result.misconfigurations or []:
            cause = misconfig.cause_metadata
            findings.append(Finding(
                kind=FindingKind.MISCONFIGURATION,
                identifier=misconfig.id,
                severity=Severity.from_tool(misconfig.severity),
                location=Location(
                    path=result.target or "",
                    start_line=cause.start_line if cause else None,
                    end_line=cause.end_line if cause else None,
                ),
                text=misconfig.title or misconfig.id or "",
                raw=misconfig.raw(),
            ))

    return FindingSet(
        scanner=scanner,
        kind=FindingKind.MISCONFIGURATION,
        findings=tuple(findings),
        extras={"total_files": len(files), "files": files},
    )
