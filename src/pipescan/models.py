"""Core data types for pipescan: findings, finding sets, consolidated report."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator


SEVERITY_BUCKETS = ("critical", "high", "medium", "low")
COUNTER_KEYS = ("total",) + SEVERITY_BUCKETS


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_tool(cls, value: Any) -> Severity:
        """Map a tool severity string by exact match; anything else is UNKNOWN."""
        if isinstance(value, str) and value in _RANKED_VALUES:
            return cls(value)
        return cls.UNKNOWN

    @property
    def bucket(self) -> str | None:
        return None if self is Severity.UNKNOWN else self.value.lower()


_RANKED_VALUES = {"CRITICAL", "HIGH", "MEDIUM", "LOW"}


class FindingKind(str, Enum):
    VULNERABILITY = "vulnerability"
    MISCONFIGURATION = "misconfiguration"
    SECRET = "secret"


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Location:
    path: str
    start_line: int | None = None
    end_line: int | None = None
    start_column: int | None = None
    end_column: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "start_column": self.start_column,
            "end_column": self.end_column,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Location:
        return cls(
            path=data.get("path", ""),
            start_line=data.get("start_line"),
            end_line=data.get("end_line"),
            start_column=data.get("start_column"),
            end_column=data.get("end_column"),
        )


@dataclass(frozen=True)
class Finding:
    kind: FindingKind
    identifier: str | None = None
    severity: Severity | None = None      # None for secrets
    location: Location | None = None
    text: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "identifier": self.identifier,
            "severity": self.severity.value if self.severity else None,
            "location": self.location.to_dict() if self.location else None,
            "text": self.text,
            "raw": self.raw,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Finding:
        severity = data.get("severity")
        location = data.get("location")
        return cls(
            kind=FindingKind(data["kind"]),
            identifier=data.get("identifier"),
            severity=Severity(severity) if severity else None,
            location=Location.from_dict(location) if location else None,
            text=data.get("text", ""),
            raw=dict(data.get("raw") or {}),
        )


@dataclass(frozen=True)
class FindingSet:
    """Normalized output of one adapter invocation.

    Severity counters are derived from ``findings``. ``total`` is the sum of
    the four ranked buckets, except for secret sets where every surviving
    finding counts and no bucket is ever incremented.
    """

    scanner: str
    kind: FindingKind
    findings: tuple[Finding, ...] = ()
    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(
        cls, scanner: str, kind: FindingKind, **extras: Any,
    ) -> FindingSet:
        return cls(scanner=scanner, kind=kind, findings=(), extras=dict(extras))

    def _count(self, bucket: str) -> int:
        if self.kind is FindingKind.SECRET:
            return 0
        return sum(
            1 for f in self.findings
            if f.severity is not None and f.severity.bucket == bucket
        )

    @property
    def critical(self) -> int:
        return self._count("critical")

    @property
    def high(self) -> int:
        return self._count("high")

    @property
    def medium(self) -> int:
        return self._count("medium")

    @property
    def low(self) -> int:
        return self._count("low")

    @property
    def total(self) -> int:
        if self.kind is FindingKind.SECRET:
            return len(self.findings)
        return self.critical + self.high + self.medium + self.low

    def summary(self) -> dict[str, int]:
        return {key: getattr(self, key) for key in COUNTER_KEYS}

    def to_dict(self) -> dict[str, Any]:
        return {
            "scanner": self.scanner,
            "kind": self.kind.value,
            **self.summary(),
            "findings": [f.to_dict() for f in self.findings],
            "extras": self.extras,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FindingSet:
        return cls(
            scanner=data["scanner"],
            kind=FindingKind(data["kind"]),
            findings=tuple(Finding.from_dict(f) for f in data.get("findings", [])),
            extras=dict(data.get("extras") or {}),
        )


# ---------------------------------------------------------------------------
# Consolidated report
# ---------------------------------------------------------------------------

@dataclass
class ConsolidatedReport:
    """Counters summed across scanners plus the per-scanner breakdown.

    ``total`` may exceed the sum of the severity counters: secret sets add to
    ``total`` without touching any bucket.
    """

    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    scanner_results: list[FindingSet] = field(default_factory=list)

    def counters(self) -> dict[str, int]:
        return {key: getattr(self, key) for key in COUNTER_KEYS}

    def findings_of_kind(self, kind: FindingKind) -> Iterator[Finding]:
        for result in self.scanner_results:
            for finding in result.findings:
                if finding.kind is kind:
                    yield finding

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.counters(),
            "scanner_results": [r.to_dict() for r in self.scanner_results],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConsolidatedReport:
        return cls(
            total=int(data.get("total", 0)),
            critical=int(data.get("critical", 0)),
            high=int(data.get("high", 0)),
            medium=int(data.get("medium", 0)),
            low=int(data.get("low", 0)),
            scanner_results=[
                FindingSet.from_dict(r) for r in data.get("scanner_results", [])
            ],
        )
