"""Shared fixtures for pipescan tests."""

import json
import logging
import stat
import sys
from pathlib import Path

import pytest

from pipescan.config import ScanConfig


# ---------------------------------------------------------------------------
# Fake tool executables
# ---------------------------------------------------------------------------

_FAKE_TOOL = '''#!{python}
import json
import sys

args = sys.argv[1:]
with open({argv_log!r}, "w") as fh:
    json.dump(args, fh)

report = {report!r}
if report is not None:
    flag = {output_flag!r}
    if flag in args:
        mode = "wb" if isinstance(report, bytes) else "w"
        with open(args[args.index(flag) + 1], mode) as fh:
            fh.write(report)

sys.stderr.write({stderr!r})
sys.exit({exit_code})
'''


def write_fake_tool(
    bin_dir: Path,
    name: str,
    *,
    report=None,
    exit_code: int = 0,
    output_flag: str = "--output",
    stderr: str = "",
) -> Path:
    """Write an executable that records its argv and writes *report* to the output flag's path.

    *report* may be str or bytes (written verbatim), any JSON-serializable value, or
    None (nothing written).
    """
    bin_dir.mkdir(parents=True, exist_ok=True)
    if report is not None and not isinstance(report, (str, bytes)):
        report = json.dumps(report)
    script = bin_dir / name
    script.write_text(_FAKE_TOOL.format(
        python=sys.executable,
        argv_log=str(bin_dir / f"{name}.argv.json"),
        report=report,
        output_flag=output_flag,
        stderr=stderr,
        exit_code=exit_code,
    ))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


def recorded_argv(tool: Path) -> list[str]:
    return json.loads((tool.parent / f"{tool.name}.argv.json").read_text())


@pytest.fixture
def bin_dir(tmp_path):
    return tmp_path / "bin"


@pytest.fixture
def project_dir(tmp_path):
    """A small project to scan."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "app.py").write_text("print('hello')\n")
    (root / "requirements.txt").write_text("requests==2.0.0\n")
    return root


@pytest.fixture
def scan_config(project_dir):
    return ScanConfig.build(target=project_dir, workspace=project_dir.parent)


# ---------------------------------------------------------------------------
# Sample tool reports
# ---------------------------------------------------------------------------

def trivy_report(*severities: str, target: str = "requirements.txt") -> dict:
    return {
        "SchemaVersion": 2,
        "Results": [{
            "Target": target,
            "Type": "pip",
            "Vulnerabilities": [
                {
                    "VulnerabilityID": f"CVE-2024-{i:04d}",
                    "PkgName": "requests",
                    "InstalledVersion": "2.0.0",
                    "FixedVersion": "2.32.0",
                    "Severity": sev,
                    "Title": f"issue {i}",
                }
                for i, sev in enumerate(severities)
            ],
        }],
    }


def gitleaks_leak(file: str = "src/settings.py", match: str = 'token = "abcdef123456"', **extra) -> dict:
    leak = {
        "RuleID": "strict-secret-detection",
        "Description": "Detect likely passwords or secrets with high entropy",
        "File": file,
        "Match": match,
        "Secret": "abcdef123456",
        "StartLine": 3,
        "EndLine": 3,
        "StartColumn": 1,
        "EndColumn": 24,
    }
    leak.update(extra)
    return leak


@pytest.fixture(autouse=True)
def _chdir_tmp(tmp_path, monkeypatch):
    """Keep default artifact paths (scan-outputs.env, ...) inside tmp_path."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """setup_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
