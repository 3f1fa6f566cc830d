"""Tests for the two-stage SBOM adapter (cdxgen, then trivy)."""

from pathlib import Path

import pytest

from conftest import recorded_argv, trivy_report, write_fake_tool
from pipescan.adapters import SbomScanner, ToolBinary, TrivyScanner
from pipescan.adapters.sbom_adapter import FallbackRequested, SbomArtifact
from pipescan.config import ScanConfig
from pipescan.ports import ProvisioningError, TargetNotFoundError

_SBOM = {"bomFormat": "CycloneDX", "specVersion": "1.4", "components": []}


def _scanner(bin_dir, *, cdxgen_report=_SBOM, cdxgen_exit=0, with_cdxgen=True):
    trivy = write_fake_tool(bin_dir, "trivy", report=trivy_report("HIGH", "LOW"))
    if with_cdxgen:
        cdxgen = write_fake_tool(bin_dir, "cdxgen", report=cdxgen_report, exit_code=cdxgen_exit)
        cdxgen_binary = ToolBinary("cdxgen", explicit_path=str(cdxgen))
    else:
        cdxgen_binary = ToolBinary("cdxgen", explicit_path=str(bin_dir / "missing-cdxgen"))
    return SbomScanner(TrivyScanner(ToolBinary("trivy", explicit_path=str(trivy))), cdxgen_binary), trivy


class TestGenerate:
    @pytest.mark.asyncio
    async def test_artifact(self, bin_dir, scan_config, tmp_path):
        scanner, _ = _scanner(bin_dir)
        out = tmp_path / "out"
        out.mkdir()
        stage = await scanner.generate(scan_config, out)
        assert isinstance(stage, SbomArtifact)
        assert stage.path == out / "sbom.json"
        argv = recorded_argv(bin_dir / "cdxgen")
        assert argv[:3] == ["--spec-version", "1.4", "--deep"]
        assert argv[-2:] == [str(out / "sbom.json"), str(scan_config.target)]
        assert not (scan_config.target / "sbom.json").exists()

    @pytest.mark.asyncio
    async def test_nonzero_exit_with_output_is_accepted(self, bin_dir, scan_config, tmp_path):
        scanner, _ = _scanner(bin_dir, cdxgen_exit=1)
        assert isinstance(await scanner.generate(scan_config, tmp_path), SbomArtifact)

    @pytest.mark.asyncio
    async def test_no_output_requests_fallback(self, bin_dir, scan_config, tmp_path):
        scanner, _ = _scanner(bin_dir, cdxgen_report=None, cdxgen_exit=1)
        stage = await scanner.generate(scan_config, tmp_path)
        assert isinstance(stage, FallbackRequested)
        assert "sbom.json" in stage.reason

    @pytest.mark.asyncio
    async def test_missing_cdxgen_requests_fallback(self, bin_dir, scan_config, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", str(bin_dir / "nowhere"))
        scanner, _ = _scanner(bin_dir, with_cdxgen=False)
        stage = await scanner.generate(scan_config, tmp_path)
        assert isinstance(stage, FallbackRequested)
        assert "cdxgen" in stage.reason


class TestSbomScan:
    @pytest.mark.asyncio
    async def test_scans_generated_sbom(self, bin_dir, scan_config):
        scanner, trivy = _scanner(bin_dir)
        result = await scanner.scan(scan_config)
        assert result.scanner == "sbom"
        assert result.high == 1
        assert result.low == 1
        assert result.extras["sbom_spec_version"] == "1.4"
        assert "fallback" not in result.extras
        argv = recorded_argv(trivy)
        assert argv[0] == "sbom"
        sbom = Path(argv[-1])
        assert sbom.name == "sbom.json"
        assert sbom.parent != scan_config.target
        # removed once trivy has read it
        assert not sbom.exists()
        assert not (scan_config.target / "sbom.json").exists()

    @pytest.mark.asyncio
    async def test_stale_workspace_sbom_is_ignored(self, bin_dir, scan_config):
        stale = scan_config.target / "sbom.json"
        stale.write_text('{"bomFormat": "CycloneDX", "components": ["old"]}')
        scanner, trivy = _scanner(bin_dir, cdxgen_report=None, cdxgen_exit=2)

        result = await scanner.scan(scan_config)

        assert result.extras["fallback"] == "trivy"
        assert recorded_argv(trivy)[0] == "fs"
        assert stale.read_text() == '{"bomFormat": "CycloneDX", "components": ["old"]}'

    @pytest.mark.asyncio
    async def test_fallback_scans_original_target(self, bin_dir, scan_config):
        scanner, trivy = _scanner(bin_dir, cdxgen_report=None, cdxgen_exit=2)
        result = await scanner.scan(scan_config)
        assert result.scanner == "sbom"
        assert result.total == 2
        assert result.extras["fallback"] == "trivy"
        assert result.extras["fallback_reason"]
        argv = recorded_argv(trivy)
        assert argv[0] == "fs"
        assert argv[-1] == str(scan_config.target)

    @pytest.mark.asyncio
    async def test_missing_target(self, bin_dir, tmp_path):
        scanner, _ = _scanner(bin_dir)
        cfg = ScanConfig.build(target=tmp_path / "gone", workspace=tmp_path)
        with pytest.raises(TargetNotFoundError):
            await scanner.scan(cfg)


class TestSbomInstall:
    def test_missing_cdxgen_tolerated(self, bin_dir, monkeypatch):
        monkeypatch.setenv("PATH", str(bin_dir / "nowhere"))
        scanner, trivy = _scanner(bin_dir, with_cdxgen=False)
        assert scanner.install() == trivy

    def test_missing_trivy_is_fatal(self, bin_dir, monkeypatch):
        monkeypatch.setenv("PATH", str(bin_dir / "nowhere"))
        cdxgen = write_fake_tool(bin_dir, "cdxgen")
        scanner = SbomScanner(
            TrivyScanner(ToolBinary("trivy", explicit_path=str(bin_dir / "no-trivy"))),
            ToolBinary("cdxgen", explicit_path=str(cdxgen)),
        )
        with pytest.raises(ProvisioningError):
            scanner.install()
