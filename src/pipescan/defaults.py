"""Single source of truth for shared constants and configuration defaults.

Domain-specific constants that are truly local to one adapter (e.g. the
built-in gitleaks rules) stay in that adapter's module.
"""

from __future__ import annotations

from pathlib import Path


# ---------------------------------------------------------------------------
# Scan inputs
# ---------------------------------------------------------------------------

DEFAULT_SCAN_KIND = "fs"
DEFAULT_SCAN_TARGET = "."
DEFAULT_SEVERITY = "HIGH,CRITICAL"
DEFAULT_EXIT_CODE = "1"
ADVISORY_EXIT_CODE = "0"

# Registration order matters: it is the order of the per-scanner breakdown.
DEFAULT_SCANNERS = ("trivy", "gitleaks")
KNOWN_SCANNERS = ("trivy", "trivy-config", "gitleaks", "sbom")

# ---------------------------------------------------------------------------
# Output artifacts
# ---------------------------------------------------------------------------

DEFAULT_OUTPUT_ENV = "scan-outputs.env"
DEFAULT_OUTPUT_JSON = "scan-results.json"

# ---------------------------------------------------------------------------
# Tool provisioning
# ---------------------------------------------------------------------------

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "pipescan"

# ---------------------------------------------------------------------------
# Tool invocation
# ---------------------------------------------------------------------------

TRIVY_SUCCESS_CODES = frozenset({0})
GITLEAKS_SUCCESS_CODES = frozenset({0, 1})   # 1 = leaks found
TRIVY_SKIP_DIRS = "node_modules,.git,.gitlab"
TRIVY_SKIP_DIR_KINDS = frozenset({"fs", "repo", "rootfs"})
SBOM_SPEC_VERSION = "1.4"
SBOM_FILENAME = "sbom.json"
STDERR_LOG_LIMIT = 2000

# ---------------------------------------------------------------------------
# Secret path redaction
# ---------------------------------------------------------------------------

SKIPPED_MANIFESTS = frozenset({
    "package.json",
    "package-lock.json",
    "pom.xml",
    "build.gradle",
    "requirements.txt",
    "README.md",
    ".gitignore",
})
VENDOR_DIRS = frozenset({"node_modules"})
ENV_PLACEHOLDER_PATTERN = r"[\"']?\$\{?[A-Z0-9_]+\}?[\"']?"
REDACTED_PATH_SEGMENTS = 8

# ---------------------------------------------------------------------------
# Integrations
# ---------------------------------------------------------------------------

DEFAULT_GITLAB_API_URL = "https://gitlab.com/api/v4"
HTTP_TIMEOUT_SECONDS = 30.0
SECRETS_API_TIMEOUT_SECONDS = 60.0
