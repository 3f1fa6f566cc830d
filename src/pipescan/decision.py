"""Decision policy: should the pipeline fail for this report?

Pure functions of (report, exit-code policy); no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pipescan.defaults import ADVISORY_EXIT_CODE
from pipescan.models import ConsolidatedReport


@dataclass(frozen=True)
class Decision:
    should_fail: bool
    message: str

    @property
    def exit_code(self) -> int:
        return 1 if self.should_fail else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "should_fail": self.should_fail,
            "exit_code": self.exit_code,
            "message": self.message,
        }


def is_advisory(exit_code_policy: Any) -> bool:
    return str(exit_code_policy).strip() == ADVISORY_EXIT_CODE


def summary_message(report: ConsolidatedReport) -> str:
    return (
        f"Found {report.total} vulnerabilities: "
        f"{report.critical} Critical, {report.high} High, "
        f"{report.medium} Medium, {report.low} Low"
    )


def evaluate(report: ConsolidatedReport, exit_code_policy: Any = "1") -> Decision:
    """Policy ``0`` never fails; any other policy fails iff ``report.total > 0``."""
    if is_advisory(exit_code_policy):
        return Decision(
            should_fail=False,
            message=f"{summary_message(report)} (advisory mode, not failing)",
        )
    if report.total > 0:
        return Decision(
            should_fail=True,
            message=(
                f"Security scan found {report.total} issues "
                f"({report.critical} Critical, {report.high} High, "
                f"{report.medium} Medium, {report.low} Low)"
            ),
        )
    return Decision(should_fail=False, message=summary_message(report))
