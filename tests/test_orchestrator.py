"""Tests for scan orchestration and the full pipeline run."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from conftest import gitleaks_leak, trivy_report, write_fake_tool
from pipescan.adapters import build_scanners
from pipescan.config import load_settings
from pipescan.models import Finding, FindingKind, FindingSet, Severity
from pipescan.orchestrator import Orchestrator, run
from pipescan.ports import ProvisioningError, ScanOutputMissingError, TargetNotFoundError


class _FakeScanner:
    def __init__(self, name, result=None, *, kind=FindingKind.VULNERABILITY, error=None, install_error=None):
        self.scanner_name = name
        self.finding_kind = kind
        self._result = result
        self._error = error
        self._install_error = install_error
        self.scanned = 0

    def install(self):
        if self._install_error:
            raise self._install_error
        return Path(f"/usr/bin/{self.scanner_name}")

    async def scan(self, config):
        self.scanned += 1
        if self._error:
            raise self._error
        return self._result


def _vulns(name, *severities):
    return FindingSet(
        scanner=name,
        kind=FindingKind.VULNERABILITY,
        findings=tuple(Finding(kind=FindingKind.VULNERABILITY, severity=Severity(s)) for s in severities),
    )


def _secrets(count):
    return FindingSet(
        scanner="gitleaks",
        kind=FindingKind.SECRET,
        findings=tuple(Finding(kind=FindingKind.SECRET) for _ in range(count)),
    )


class TestOrchestrator:
    def test_register_rejects_non_scanner(self, scan_config):
        with pytest.raises(TypeError):
            Orchestrator(scan_config).register(object())

    def test_install_failure_drops_adapter(self, scan_config):
        ok = _FakeScanner("trivy", _vulns("trivy"))
        broken = _FakeScanner("gitleaks", install_error=ProvisioningError("gitleaks not found"))
        orch = Orchestrator(scan_config, [ok, broken])
        assert orch.install_all() == [ok]
        assert orch.scanners == [ok]

    @pytest.mark.asyncio
    async def test_runs_in_registration_order(self, scan_config):
        orch = Orchestrator(scan_config, [
            _FakeScanner("trivy", _vulns("trivy", "CRITICAL", "HIGH", "HIGH")),
            _FakeScanner("gitleaks", _secrets(2)),
        ])
        report = await orch.run_scans()
        assert report.counters() == {"total": 5, "critical": 1, "high": 2, "medium": 0, "low": 0}
        assert [r.scanner for r in report.scanner_results] == ["trivy", "gitleaks"]

    @pytest.mark.asyncio
    async def test_scan_failure_contributes_empty_set(self, scan_config):
        failing = _FakeScanner(
            "gitleaks", kind=FindingKind.SECRET, error=ScanOutputMissingError("gitleaks produced no output"),
        )
        after = _FakeScanner("trivy", _vulns("trivy", "LOW"))
        report = await Orchestrator(scan_config, [failing, after]).run_scans()
        assert report.total == 1
        failed = report.scanner_results[0]
        assert failed.scanner == "gitleaks"
        assert failed.kind is FindingKind.SECRET
        assert failed.extras["status"] == "failed"
        assert "no output" in failed.extras["error"]
        assert after.scanned == 1

    @pytest.mark.asyncio
    async def test_missing_target_contributes_zero(self, scan_config):
        scanner = _FakeScanner("trivy", error=TargetNotFoundError("Scan target does not exist"))
        report = await Orchestrator(scan_config, [scanner]).run_scans()
        assert report.total == 0
        assert report.scanner_results[0].extras["status"] == "failed"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(self, scan_config):
        scanner = _FakeScanner("trivy-config", kind=FindingKind.MISCONFIGURATION, error=RuntimeError("boom"))
        report = await Orchestrator(scan_config, [scanner]).run_scans()
        assert report.scanner_results[0].kind is FindingKind.MISCONFIGURATION

    @pytest.mark.asyncio
    async def test_failed_set_kind_comes_from_adapter(self, scan_config):
        scanner = _FakeScanner("custom-secrets", kind=FindingKind.SECRET, error=RuntimeError("boom"))
        report = await Orchestrator(scan_config, [scanner]).run_scans()
        failed = report.scanner_results[0]
        assert failed.scanner == "custom-secrets"
        assert failed.kind is FindingKind.SECRET
        assert failed.extras["status"] == "failed"


class TestBuildScanners:
    def test_order_and_shared_trivy(self, tmp_path):
        settings = load_settings({
            "CI_PROJECT_DIR": str(tmp_path),
            "SCANNERS": "sbom,gitleaks,trivy,trivy-config",
        })
        scanners = build_scanners(settings)
        assert [s.scanner_name for s in scanners] == ["sbom", "gitleaks", "trivy", "trivy-config"]
        assert [s.finding_kind for s in scanners] == [
            FindingKind.VULNERABILITY, FindingKind.SECRET, FindingKind.VULNERABILITY, FindingKind.MISCONFIGURATION,
        ]
        sbom, _, trivy, config = scanners
        assert sbom.vulnerability_scanner is trivy
        assert config.binary is trivy.binary


# ---------------------------------------------------------------------------
# Full run with fake tool binaries
# ---------------------------------------------------------------------------

def _env(tmp_path, project_dir, bin_dir, **extra):
    env = {
        "CI_PROJECT_DIR": str(project_dir),
        "SCANNER_CACHE_DIR": str(bin_dir),
        "OUTPUT_ENV": str(tmp_path / "out" / "scan-outputs.env"),
        "OUTPUT_JSON": str(tmp_path / "out" / "scan-results.json"),
    }
    env.update(extra)
    return env


class TestRun:
    @pytest.mark.asyncio
    async def test_end_to_end(self, tmp_path, project_dir, bin_dir):
        write_fake_tool(bin_dir, "trivy", report=trivy_report("CRITICAL", "HIGH", "HIGH"))
        write_fake_tool(
            bin_dir, "gitleaks", exit_code=1, output_flag="--report-path",
            report=[gitleaks_leak(), gitleaks_leak(file="src/other.py"), gitleaks_leak(file="package.json")],
        )
        settings = load_settings(_env(tmp_path, project_dir, bin_dir))

        decision = await run(settings)

        assert decision.should_fail is True
        assert decision.exit_code == 1
        dotenv = (tmp_path / "out" / "scan-outputs.env").read_text()
        assert "VULNERABILITIES_FOUND=5" in dotenv
        assert "CRITICAL_COUNT=1" in dotenv
        assert "HIGH_COUNT=2" in dotenv
        data = json.loads((tmp_path / "out" / "scan-results.json").read_text())
        assert data["total"] == 5
        assert [r["scanner"] for r in data["scanner_results"]] == ["trivy", "gitleaks"]

    @pytest.mark.asyncio
    async def test_advisory_mode(self, tmp_path, project_dir, bin_dir):
        write_fake_tool(bin_dir, "trivy", report=trivy_report("CRITICAL"))
        settings = load_settings(_env(tmp_path, project_dir, bin_dir, SCANNERS="trivy", EXIT_CODE="0"))
        decision = await run(settings)
        assert decision.should_fail is False
        assert "advisory" in decision.message

    @pytest.mark.asyncio
    async def test_missing_target_passes_with_zero(self, tmp_path, project_dir, bin_dir):
        write_fake_tool(bin_dir, "trivy", report=trivy_report("CRITICAL"))
        settings = load_settings(_env(tmp_path, project_dir, bin_dir, SCANNERS="trivy", SCAN_TARGET="does-not-exist"))
        decision = await run(settings)
        assert decision.should_fail is False
        data = json.loads((tmp_path / "out" / "scan-results.json").read_text())
        assert data["scanner_results"][0]["extras"]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_integrations_called(self, tmp_path, project_dir, bin_dir):
        write_fake_tool(bin_dir, "gitleaks", exit_code=1, output_flag="--report-path", report=[gitleaks_leak()])
        settings = load_settings(_env(
            tmp_path, project_dir, bin_dir,
            SCANNERS="gitleaks",
            CI_JOB_TOKEN="tok", CI_PROJECT_ID="42", CI_MERGE_REQUEST_IID="7",
            SECRETS_API_URL="https://inventory.example.com/secrets",
        ))
        with patch("pipescan.orchestrator.post_mr_comment", new_callable=AsyncMock) as post, \
                patch("pipescan.orchestrator.send_secrets", new_callable=AsyncMock) as send:
            decision = await run(settings)
        assert decision.should_fail is True
        post.assert_awaited_once()
        send.assert_awaited_once()
        secrets, inventory = send.await_args.args
        assert len(secrets) == 1
        assert inventory.project_id == "42"

    @pytest.mark.asyncio
    async def test_no_secrets_skips_inventory(self, tmp_path, project_dir, bin_dir):
        write_fake_tool(bin_dir, "trivy", report=trivy_report())
        settings = load_settings(_env(tmp_path, project_dir, bin_dir, SCANNERS="trivy"))
        with patch("pipescan.orchestrator.send_secrets", new_callable=AsyncMock) as send:
            decision = await run(settings)
        assert decision.should_fail is False
        send.assert_not_awaited()
