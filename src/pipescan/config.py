"""Run configuration, built once from CLI flags and environment variables.

This is the only module that reads the process environment. Every input
``name`` is looked up as ``INPUT_<NAME>`` first (CI action convention), then
``<NAME>``, then the default. Explicit overrides (CLI flags) win over both.

Inputs:
    SCAN_TYPE, SCAN_TARGET, SEVERITY, IGNORE_UNFIXED, EXIT_CODE, SCANNERS,
    SCAN_TIMEOUT, OUTPUT_ENV, OUTPUT_JSON, LOG_FORMAT, DEBUG / CI_DEBUG_TRACE

Tools:
    SCANNER_CACHE_DIR, TRIVY_PATH, GITLEAKS_PATH, CDXGEN_PATH, GITLEAKS_CONFIG

GitLab:
    GITLAB_TOKEN (falls back to CI_JOB_TOKEN), CI_API_V4_URL, CI_PROJECT_ID,
    CI_MERGE_REQUEST_IID, CI_PROJECT_DIR (workspace)

Secret inventory:
    SECRETS_API_URL, PROJECT_ID (falls back to CI_PROJECT_ID),
    X_API_KEY, X_SECRET_KEY, X_TENANT_KEY
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from pipescan.defaults import (
    DEFAULT_CACHE_DIR,
    DEFAULT_EXIT_CODE,
    DEFAULT_GITLAB_API_URL,
    DEFAULT_OUTPUT_ENV,
    DEFAULT_OUTPUT_JSON,
    DEFAULT_SCAN_KIND,
    DEFAULT_SCAN_TARGET,
    DEFAULT_SCANNERS,
    DEFAULT_SEVERITY,
    KNOWN_SCANNERS,
)
from pipescan.models import Severity

_TRUTHY = ("1", "true", "yes", "on")
_RANKED = tuple(s.value for s in Severity if s is not Severity.UNKNOWN)


class ConfigError(ValueError):
    """Raised for invalid run configuration."""


# ---------------------------------------------------------------------------
# Scan configuration (passed read-only to every adapter)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScanConfig:
    target: Path
    workspace: Path
    scan_kind: str = DEFAULT_SCAN_KIND
    severities: tuple[str, ...] = ("HIGH", "CRITICAL")
    ignore_unfixed: bool = False
    exit_code: str = DEFAULT_EXIT_CODE
    timeout: float | None = None

    @property
    def severity_arg(self) -> str:
        return ",".join(self.severities)

    @classmethod
    def build(
        cls,
        *,
        target: str | Path = DEFAULT_SCAN_TARGET,
        workspace: str | Path | None = None,
        scan_kind: str = DEFAULT_SCAN_KIND,
        severity: str | Iterable[str] = DEFAULT_SEVERITY,
        ignore_unfixed: bool = False,
        exit_code: Any = DEFAULT_EXIT_CODE,
        timeout: float | None = None,
    ) -> ScanConfig:
        ws = Path(workspace) if workspace else Path.cwd()
        return cls(
            target=resolve_target(target, ws),
            workspace=ws.resolve(),
            scan_kind=scan_kind or DEFAULT_SCAN_KIND,
            severities=parse_severities(severity),
            ignore_unfixed=ignore_unfixed,
            exit_code=str(exit_code).strip(),
            timeout=timeout,
        )


def parse_severities(value: str | Iterable[str]) -> tuple[str, ...]:
    """Parse a severity filter: case-insensitive, uppercased, order kept, de-duplicated."""
    items = value.split(",") if isinstance(value, str) else list(value)
    result: list[str] = []
    for item in items:
        level = item.strip().upper()
        if not level:
            continue
        if level not in _RANKED:
            raise ConfigError(
                f"Unknown severity '{item.strip()}' (expected one of {', '.join(_RANKED)})"
            )
        if level not in result:
            result.append(level)
    if not result:
        raise ConfigError("Severity filter must name at least one level")
    return tuple(result)


def resolve_target(target: str | Path, workspace: Path) -> Path:
    path = Path(target)
    if not path.is_absolute():
        path = workspace / path
    return path.resolve()


# ---------------------------------------------------------------------------
# Whole-run settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OutputSettings:
    env_path: Path = Path(DEFAULT_OUTPUT_ENV)
    json_path: Path = Path(DEFAULT_OUTPUT_JSON)


@dataclass(frozen=True)
class ToolSettings:
    cache_dir: Path = DEFAULT_CACHE_DIR
    trivy_path: str = ""
    gitleaks_path: str = ""
    cdxgen_path: str = ""
    gitleaks_config: str = ""


@dataclass(frozen=True)
class GitLabSettings:
    token: str = ""
    api_url: str = DEFAULT_GITLAB_API_URL
    project_id: str = ""
    mr_iid: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.mr_iid and self.project_id)


@dataclass(frozen=True)
class InventorySettings:
    url: str = ""
    project_id: str = ""
    api_key: str = ""
    secret_key: str = ""
    tenant_key: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.project_id)


@dataclass(frozen=True)
class Settings:
    scan: ScanConfig
    scanners: tuple[str, ...] = DEFAULT_SCANNERS
    outputs: OutputSettings = field(default_factory=OutputSettings)
    tools: ToolSettings = field(default_factory=ToolSettings)
    gitlab: GitLabSettings = field(default_factory=GitLabSettings)
    inventory: InventorySettings = field(default_factory=InventorySettings)
    debug: bool = False
    log_format: str = "console"


def parse_scanners(value: str | Iterable[str]) -> tuple[str, ...]:
    items = value.split(",") if isinstance(value, str) else list(value)
    names: list[str] = []
    for item in items:
        name = item.strip().lower()
        if not name:
            continue
        if name not in KNOWN_SCANNERS:
            raise ConfigError(
                f"Unknown scanner '{name}' (expected one of {', '.join(KNOWN_SCANNERS)})"
            )
        if name not in names:
            names.append(name)
    return tuple(names)


def _input(env: Mapping[str, str], name: str, default: str = "") -> str:
    key = name.upper().replace("-", "_")
    return env.get(f"INPUT_{key}") or env.get(key) or default


def _flag(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


def _timeout(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid scan timeout: {value!r}") from None
    return seconds if seconds > 0 else None


def load_settings(
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Build :class:`Settings` from the environment plus explicit overrides.

    ``overrides`` keys mirror the input names in lower snake case
    (``scan_type``, ``scan_target``, ``severity``, ``ignore_unfixed``,
    ``exit_code``, ``scanners``, ``timeout``, ``output_env``, ``output_json``,
    ``debug``, ``log_format``). ``None`` values are ignored.
    """
    env = os.environ if environ is None else environ
    over = {k: v for k, v in (overrides or {}).items() if v is not None}

    workspace = env.get("CI_PROJECT_DIR") or str(Path.cwd())
    ignore_unfixed = over.get("ignore_unfixed")
    if ignore_unfixed is None:
        ignore_unfixed = _flag(_input(env, "ignore-unfixed"))

    scan = ScanConfig.build(
        target=over.get("scan_target", _input(env, "scan-target", DEFAULT_SCAN_TARGET)),
        workspace=workspace,
        scan_kind=over.get("scan_type", _input(env, "scan-type", DEFAULT_SCAN_KIND)),
        severity=over.get("severity", _input(env, "severity", DEFAULT_SEVERITY)),
        ignore_unfixed=bool(ignore_unfixed),
        exit_code=over.get("exit_code", _input(env, "exit-code", DEFAULT_EXIT_CODE)),
        timeout=_timeout(over.get("timeout", _input(env, "scan-timeout"))),
    )

    scanners = parse_scanners(
        over.get("scanners", _input(env, "scanners", ",".join(DEFAULT_SCANNERS)))
    )
    if not scanners:
        raise ConfigError("At least one scanner must be enabled")

    debug = over.get("debug")
    if debug is None:
        debug = _flag(env.get("DEBUG", "")) or _flag(env.get("CI_DEBUG_TRACE", ""))

    return Settings(
        scan=scan,
        scanners=scanners,
        outputs=OutputSettings(
            env_path=Path(over.get("output_env", _input(env, "output-env", DEFAULT_OUTPUT_ENV))),
            json_path=Path(over.get("output_json", _input(env, "output-json", DEFAULT_OUTPUT_JSON))),
        ),
        tools=ToolSettings(
            cache_dir=Path(env.get("SCANNER_CACHE_DIR") or DEFAULT_CACHE_DIR),
            trivy_path=env.get("TRIVY_PATH", ""),
            gitleaks_path=env.get("GITLEAKS_PATH", ""),
            cdxgen_path=env.get("CDXGEN_PATH", ""),
            gitleaks_config=_input(env, "gitleaks-config"),
        ),
        gitlab=GitLabSettings(
            token=_input(env, "gitlab-token") or env.get("CI_JOB_TOKEN", ""),
            api_url=(env.get("CI_API_V4_URL") or DEFAULT_GITLAB_API_URL).rstrip("/"),
            project_id=env.get("CI_PROJECT_ID", ""),
            mr_iid=env.get("CI_MERGE_REQUEST_IID", ""),
        ),
        inventory=InventorySettings(
            url=env.get("SECRETS_API_URL", "").rstrip("/"),
            project_id=env.get("PROJECT_ID") or env.get("CI_PROJECT_ID", ""),
            api_key=env.get("X_API_KEY", ""),
            secret_key=env.get("X_SECRET_KEY", ""),
            tenant_key=env.get("X_TENANT_KEY", ""),
        ),
        debug=bool(debug),
        log_format=over.get("log_format", _input(env, "log-format", "console")),
    )
