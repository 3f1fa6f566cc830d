"""Steps shared by the report-file adapters."""

from __future__ import annotations

import logging
from pathlib import Path

from pipescan.defaults import STDERR_LOG_LIMIT
from pipescan.ports import ScanOutputMissingError, TargetNotFoundError
from pipescan.process import ToolRun

log = logging.getLogger("pipescan.adapters")


def validate_target(target: Path) -> None:
    if not target.exists():
        raise TargetNotFoundError(f"Scan target does not exist: {target}")


def read_report(
    run: ToolRun,
    report_path: Path,
    *,
    tool: str,
    success_codes: frozenset[int],
) -> str | None:
    """Return the report text, or ``None`` when there is nothing to parse.

    An exit code outside *success_codes* is logged; a report written anyway
    is still returned. A failed run with no report raises
    :class:`ScanOutputMissingError`. A clean run that wrote nothing, or a
    report that is not UTF-8, gives ``None`` with a warning.
    """
    failed = run.returncode not in success_codes
    if failed:
        log.error(
            "%s exited with code %d: %s",
            tool, run.returncode, run.stderr.strip()[:STDERR_LOG_LIMIT],
            extra={"scanner": tool, "exit_code": run.returncode},
        )
    elif run.stderr.strip():
        log.debug("%s stderr: %s", tool, run.stderr.strip()[:STDERR_LOG_LIMIT])

    if not report_path.exists():
        if failed:
            raise ScanOutputMissingError(
                f"{tool} produced no output (exit code {run.returncode})"
            )
        log.warning("%s did not write a report to %s", tool, report_path)
        return None

    data = report_path.read_bytes()
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        log.warning("%s report %s is not valid UTF-8: %s", tool, report_path, exc)
        return None
    log.debug("%s report size: %d bytes", tool, len(data))
    return text
