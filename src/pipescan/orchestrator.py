"""Scan orchestration: install adapters, run them in order, aggregate, report.

Adapters run strictly sequentially. A failing adapter never aborts the run:
install failures drop the adapter, scan failures contribute an empty set
tagged ``status=failed``.
"""

from __future__ import annotations

import logging
import time

from pipescan.adapters import build_scanners
from pipescan.aggregate import aggregate
from pipescan.config import ScanConfig, Settings
from pipescan.decision import Decision, evaluate
from pipescan.integrations.gitlab import post_mr_comment
from pipescan.integrations.secrets_inventory import send_secrets
from pipescan.models import ConsolidatedReport, FindingKind, FindingSet
from pipescan.observability import log_group
from pipescan.outputs import log_summary, write_dotenv, write_json_report
from pipescan.ports import ScanError, ScannerPort

log = logging.getLogger(__name__)

_MS_PER_SECOND = 1000


class Orchestrator:
    def __init__(
        self,
        scan_config: ScanConfig,
        scanners: list[ScannerPort] | None = None,
    ) -> None:
        self.scan_config = scan_config
        self.scanners: list[ScannerPort] = []
        for scanner in scanners or []:
            self.register(scanner)

    def register(self, scanner: ScannerPort) -> None:
        if not isinstance(scanner, ScannerPort):
            raise TypeError(f"{scanner!r} does not implement ScannerPort")
        self.scanners.append(scanner)

    def install_all(self) -> list[ScannerPort]:
        """Install every adapter; drop the ones that fail."""
        installed: list[ScannerPort] = []
        for scanner in self.scanners:
            try:
                path = scanner.install()
            except ScanError as exc:
                log.warning("Failed to install %s: %s", scanner.scanner_name, exc)
                continue
            log.info("%s ready at %s", scanner.scanner_name, path)
            installed.append(scanner)
        self.scanners = installed
        return installed

    async def run_scans(self) -> ConsolidatedReport:
        report = ConsolidatedReport()
        for scanner in self.scanners:
            name = scanner.scanner_name
            log.info("Running %s scanner...", name)
            start = time.monotonic()
            try:
                result = await scanner.scan(self.scan_config)
            except Exception as exc:
                log.warning(
                    "%s scan failed: %s", name, exc,
                    extra={"scanner": name}, exc_info=log.isEnabledFor(logging.DEBUG),
                )
                result = FindingSet.empty(
                    name,
                    scanner.finding_kind,
                    status="failed",
                    error=str(exc),
                )
            log.debug(
                "%s finished", name,
                extra={
                    "scanner": name,
                    "duration_ms": round((time.monotonic() - start) * _MS_PER_SECOND, 1),
                },
            )
            aggregate(report, result)
        return report


async def run(settings: Settings) -> Decision:
    """Full pipeline run: scans, artifacts, integrations, then the decision."""
    orchestrator = Orchestrator(settings.scan, build_scanners(settings))

    with log_group("Installing scanners"):
        orchestrator.install_all()

    with log_group("Running security scans"):
        log.info("Scan type: %s", settings.scan.scan_kind)
        log.info("Scan target: %s", settings.scan.target)
        log.info("Severity filter: %s", settings.scan.severity_arg)
        log.info("Scanners: %s", ", ".join(s.scanner_name for s in orchestrator.scanners) or "none")
        report = await orchestrator.run_scans()

    with log_group("Security scan results"):
        log_summary(report)

    write_dotenv(report, settings.outputs.env_path)
    write_json_report(report, settings.outputs.json_path)

    await post_mr_comment(report, settings.gitlab)
    secrets = list(report.findings_of_kind(FindingKind.SECRET))
    if secrets:
        await send_secrets(secrets, settings.inventory)

    decision = evaluate(report, settings.scan.exit_code)
    if decision.should_fail:
        log.error(decision.message)
    else:
        log.info(decision.message)
    return decision
