"""SBOM adapter: cdxgen generates a CycloneDX file, trivy scans it.

Two explicit stages:

1. ``generate`` runs cdxgen and returns either an :class:`SbomArtifact` or a
   :class:`FallbackRequested`.
2. ``scan`` hands the artifact to the vulnerability adapter with the ``sbom``
   scan kind, or, when stage 1 asked for a fallback, runs the vulnerability
   adapter against the original target instead.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from pipescan.adapters._common import validate_target
from pipescan.adapters._provision import ToolBinary
from pipescan.adapters.trivy_adapter import TrivyScanner
from pipescan.config import ScanConfig
from pipescan.defaults import SBOM_FILENAME, SBOM_SPEC_VERSION, STDERR_LOG_LIMIT
from pipescan.models import FindingKind, FindingSet
from pipescan.ports import ProvisioningError, ScanError
from pipescan.process import run_tool, scratch_dir

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SbomArtifact:
    path: Path


@dataclass(frozen=True)
class FallbackRequested:
    reason: str


SbomStage = Union[SbomArtifact, FallbackRequested]


class SbomScanner:
    scanner_name = "sbom"
    finding_kind = FindingKind.VULNERABILITY

    def __init__(
        self,
        vulnerability_scanner: TrivyScanner,
        binary: ToolBinary | None = None,
    ) -> None:
        self.vulnerability_scanner = vulnerability_scanner
        self.binary = binary or ToolBinary("cdxgen")

    def install(self) -> Path:
        """Install trivy (required) and cdxgen (optional: without it every scan falls back)."""
        trivy = self.vulnerability_scanner.install()
        try:
            return self.binary.install()
        except ProvisioningError as exc:
            log.warning("cdxgen unavailable, SBOM scans will fall back to trivy: %s", exc)
            return trivy

    async def generate(self, config: ScanConfig, output_dir: Path) -> SbomStage:
        """Stage 1: write ``sbom.json`` into *output_dir* with cdxgen.

        *output_dir* must be fresh; a file already at the output path would be
        indistinguishable from a successful run.
        """
        if not self.binary.is_installed:
            try:
                self.binary.install()
            except ProvisioningError as exc:
                return FallbackRequested(f"cdxgen not installed: {exc}")

        target = config.target
        output = output_dir / SBOM_FILENAME
        cmd = [
            str(self.binary.path),
            "--spec-version", SBOM_SPEC_VERSION,
            "--deep",
            "--output", str(output),
            str(target),
        ]
        log.info("Generating SBOM for %s", target)
        try:
            run = await run_tool(
                cmd, cwd=target if target.is_dir() else target.parent, timeout=config.timeout,
            )
        except ScanError as exc:
            return FallbackRequested(str(exc))

        # cdxgen may exit non-zero and still write a usable SBOM
        if run.returncode != 0:
            log.warning(
                "cdxgen exited with code %d: %s",
                run.returncode, run.stderr.strip()[:STDERR_LOG_LIMIT],
            )
        if not output.exists():
            return FallbackRequested(f"cdxgen did not write {output}")
        log.info("SBOM generated: %s", output)
        return SbomArtifact(output)

    async def scan(self, config: ScanConfig) -> FindingSet:
        validate_target(config.target)
        # The SBOM only lives until stage 2 has read it.
        with scratch_dir("cdxgen") as tmp:
            stage = await self.generate(config, tmp)
            if isinstance(stage, SbomArtifact):
                sbom_config = dataclasses.replace(config, scan_kind="sbom", target=stage.path)
                result = await self.vulnerability_scanner.scan(sbom_config)
                return dataclasses.replace(
                    result,
                    scanner=self.scanner_name,
                    extras={**result.extras, "sbom_spec_version": SBOM_SPEC_VERSION},
                )

        log.warning(
            "SBOM generation failed (%s); falling back to %s scan of %s",
            stage.reason, self.vulnerability_scanner.scanner_name, config.target,
        )
        result = await self.vulnerability_scanner.scan(config)
        return dataclasses.replace(
            result,
            scanner=self.scanner_name,
            extras={
                **result.extras,
                "fallback": self.vulnerability_scanner.scanner_name,
                "fallback_reason": stage.reason,
            },
        )
