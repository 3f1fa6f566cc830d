"""Scanner port: the contract every adapter implements, and its failures.

The orchestrator depends only on :class:`ScannerPort`; it never imports a
concrete adapter type.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from pipescan.config import ScanConfig
from pipescan.models import FindingKind, FindingSet


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ScanError(Exception):
    """Base class for adapter failures the orchestrator isolates per scanner."""


class ProvisioningError(ScanError):
    """The scanner binary could not be located or made runnable."""


class TargetNotFoundError(ScanError):
    """The scan target path does not exist."""


class ToolExecutionError(ScanError):
    """The external tool could not be started or failed outright."""


class ToolTimeoutError(ToolExecutionError):
    """The external tool exceeded the configured timeout."""


class ScanOutputMissingError(ScanError):
    """The tool failed and left no report behind."""


# ---------------------------------------------------------------------------
# Port
# ---------------------------------------------------------------------------

@runtime_checkable
class ScannerPort(Protocol):
    """Port for scanner adapters.

    Each adapter wraps one tool (trivy, gitleaks, cdxgen) and normalizes its
    report into a :class:`FindingSet`.
    """
    @property
    def scanner_name(self) -> str: ...
    @property
    def finding_kind(self) -> FindingKind: ...
    def install(self) -> Path: ...
    async def scan(self, config: ScanConfig) -> FindingSet: ...
