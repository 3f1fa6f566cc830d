"""Gitleaks secrets scanner adapter.

Wraps the ``gitleaks detect`` CLI, parses its JSON report, drops matches the
redaction policy marks as noise, and normalizes the rest into a secret
FindingSet. Secrets carry no severity: they count toward ``total`` only.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from pydantic import ValidationError

from pipescan.adapters._common import read_report, validate_target
from pipescan.adapters._provision import ToolBinary
from pipescan.config import ScanConfig
from pipescan.defaults import GITLEAKS_SUCCESS_CODES
from pipescan.models import Finding, FindingKind, FindingSet, Location
from pipescan.process import format_duration, run_tool, scratch_dir
from pipescan.redaction import DEFAULT_POLICY, RedactionPolicy
from pipescan.reports import GitleaksReport

log = logging.getLogger(__name__)

DEFAULT_RULES = r"""
[[rules]]
id = "strict-secret-detection"
description = "Detect likely passwords or secrets with high entropy"
regex = '''(?i)(password|passwd|pwd|secret|key|token|auth|access)[\s"']*[=:][\s"']*["']([A-Za-z0-9@#\-_$%!]{10,})["']'''
tags = ["key", "secret", "generic", "password"]

[[rules]]
id = "aws-secret"
description = "AWS Secret Access Key"
regex = '''(?i)aws(.{0,20})?(secret|access)?(.{0,20})?['"][0-9a-zA-Z/+]{40}['"]'''
tags = ["aws", "key", "secret"]

[[rules]]
id = "aws-key"
description = "AWS Access Key ID"
regex = '''AKIA[0-9A-Z]{16}'''
tags = ["aws", "key"]

[[rules]]
id = "github-token"
description = "GitHub Personal Access Token"
regex = '''ghp_[A-Za-z0-9_]{36}'''
tags = ["github", "token"]

[[rules]]
id = "gitlab-token"
description = "GitLab Personal Access Token"
regex = '''glpat-[A-Za-z0-9\-_]{20}'''
tags = ["gitlab", "token"]

[[rules]]
id = "jwt"
description = "JSON Web Token"
regex = '''eyJ[A-Za-z0-9-_]+\.eyJ[A-Za-z0-9-_]+\.[A-Za-z0-9-_]+'''
tags = ["token", "jwt"]

[[rules]]
id = "firebase-api-key"
description = "Firebase API Key"
regex = '''AIza[0-9A-Za-z\-_]{35}'''
tags = ["firebase", "apikey"]
"""


class GitleaksScanner:
    scanner_name = "gitleaks"
    finding_kind = FindingKind.SECRET

    def __init__(
        self,
        binary: ToolBinary | None = None,
        *,
        rules_path: str = "",
        policy: RedactionPolicy = DEFAULT_POLICY,
    ) -> None:
        self.binary = binary or ToolBinary("gitleaks")
        self._rules_path = rules_path
        self._policy = policy

    def install(self) -> Path:
        return self.binary.install()

    async def scan(self, config: ScanConfig) -> FindingSet:
        validate_target(config.target)
        binary = self.install()
        log.info("Scanning for secrets in %s", config.target)
        start = time.monotonic()

        with scratch_dir("gitleaks") as tmp:
            report_path = tmp / "report.json"
            rules = Path(self._rules_path) if self._rules_path else tmp / "rules.toml"
            if not self._rules_path:
                rules.write_text(DEFAULT_RULES, encoding="utf-8")
            run = await run_tool(
                build_command(binary, config.target, report_path, rules),
                cwd=config.target if config.target.is_dir() else config.target.parent,
                timeout=config.timeout,
            )
            raw = read_report(
                run, report_path, tool=self.scanner_name,
                success_codes=GITLEAKS_SUCCESS_CODES,
            )
            duration = format_duration(time.monotonic() - start)
            result = parse_output(raw, self.scanner_name, policy=self._policy, duration=duration)

        log.info("Secrets detected: %d", result.total)
        log.info("Scan duration: %s", duration)
        return result


def build_command(binary: Path, target: Path, report_path: Path, rules: Path) -> list[str]:
    cmd = [
        str(binary), "detect",
        "--source", str(target),
        "--report-format", "json",
        "--report-path", str(report_path),
        "--config", str(rules),
        "--no-banner",
    ]
    if not (target / ".git").exists():
        cmd.append("--no-git")
    return cmd


def parse_output(
    raw: str | None,
    scanner: str = "gitleaks",
    *,
    policy: RedactionPolicy = DEFAULT_POLICY,
    duration: str = "",
) -> FindingSet:
    extras = {"duration": duration} if duration else {}
    if raw is None or not raw.strip():
        return FindingSet.empty(scanner, FindingKind.SECRET, **extras)
    try:
        leaks = GitleaksReport.validate_json(raw)
    except ValidationError:
        log.warning("Failed to parse %s JSON output", scanner)
        return FindingSet.empty(scanner, FindingKind.SECRET, **extras)

    findings: list[Finding] = []
    dropped = 0
    for leak in leaks:
        path = leak.file or ""
        if policy.excludes(path, leak.match or ""):
            dropped += 1
            continue
        findings.append(Finding(
            kind=FindingKind.SECRET,
            identifier=leak.rule_id,
            severity=None,
            location=Location(
                path=path,
                start_line=leak.start_line,
                end_line=leak.end_line,
                start_column=leak.start_column,
                end_column=leak.end_column,
            ),
            text=leak.description or "",
            raw=leak.raw(),
        ))

    if dropped:
        log.debug("Dropped %d secret matches (manifests, vendored code, placeholders)", dropped)
    return FindingSet(
        scanner=scanner,
        kind=FindingKind.SECRET,
        findings=tuple(findings),
        extras=extras,
    )
