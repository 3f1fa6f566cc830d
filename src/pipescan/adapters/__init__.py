"""Scanner adapters: normalize tool output into FindingSets."""

from __future__ import annotations

from pipescan.adapters import config_adapter, gitleaks_adapter, trivy_adapter
from pipescan.adapters._provision import ToolBinary
from pipescan.adapters.config_adapter import TrivyConfigScanner
from pipescan.adapters.gitleaks_adapter import GitleaksScanner
from pipescan.adapters.sbom_adapter import SbomScanner
from pipescan.adapters.trivy_adapter import TrivyScanner
from pipescan.config import Settings
from pipescan.ports import ScannerPort

__all__ = [
    "GitleaksScanner",
    "SbomScanner",
    "ToolBinary",
    "TrivyConfigScanner",
    "TrivyScanner",
    "REPORT_PARSERS",
    "build_scanners",
]

# Saved-report normalizers, keyed by the tool name used on the CLI.
REPORT_PARSERS = {
    "trivy": trivy_adapter.parse_output,
    "trivy-config": config_adapter.parse_output,
    "gitleaks": gitleaks_adapter.parse_output,
}


def build_scanners(settings: Settings) -> list[ScannerPort]:
    """Instantiate the enabled adapters in configured order.

    Adapters that use trivy share one :class:`ToolBinary`, so it is resolved
    once per run.
    """
    tools = settings.tools
    trivy_binary = ToolBinary("trivy", explicit_path=tools.trivy_path, cache_dir=tools.cache_dir)
    trivy = TrivyScanner(trivy_binary)

    scanners: list[ScannerPort] = []
    for name in settings.scanners:
        if name == "trivy":
            scanners.append(trivy)
        elif name == "trivy-config":
            scanners.append(TrivyConfigScanner(trivy_binary))
        elif name == "gitleaks":
            scanners.append(GitleaksScanner(
                ToolBinary("gitleaks", explicit_path=tools.gitleaks_path, cache_dir=tools.cache_dir),
                rules_path=tools.gitleaks_config,
            ))
        elif name == "sbom":
            scanners.append(SbomScanner(
                trivy,
                ToolBinary("cdxgen", explicit_path=tools.cdxgen_path, cache_dir=tools.cache_dir),
            ))
    return scanners
