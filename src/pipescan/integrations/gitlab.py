"""GitLab merge-request note with the consolidated scan summary.

Env vars (read by ``pipescan.config``): GITLAB_TOKEN / CI_JOB_TOKEN,
CI_API_V4_URL, CI_PROJECT_ID, CI_MERGE_REQUEST_IID.
"""

from __future__ import annotations

import logging

import httpx

from pipescan.config import GitLabSettings
from pipescan.defaults import HTTP_TIMEOUT_SECONDS
from pipescan.integrations._http import _ensure_client
from pipescan.models import ConsolidatedReport

log = logging.getLogger("pipescan.gitlab")


def notes_url(settings: GitLabSettings) -> str:
    return (
        f"{settings.api_url}/projects/{settings.project_id}"
        f"/merge_requests/{settings.mr_iid}/notes"
    )


def render_mr_comment(report: ConsolidatedReport) -> str:
    """Markdown body: status line, severity table, per-scanner breakdown."""
    flagged = report.critical > 0 or report.high > 0
    status = "VULNERABILITIES DETECTED" if flagged else "NO CRITICAL ISSUES"

    lines = [
        "## Security Scan Report",
        "",
        f"**Status:** {status}",
        "",
        "### Consolidated Vulnerability Summary",
        "| Severity | Count |",
        "|----------|-------|",
        f"| Critical | {report.critical} |",
        f"| High | {report.high} |",
        f"| Medium | {report.medium} |",
        f"| Low | {report.low} |",
        f"| **Total** | **{report.total}** |",
    ]
    if len(report.scanner_results) > 1:
        lines += ["", "### Scanner Breakdown", ""]
        for result in report.scanner_results:
            lines.append(
                f"**{result.scanner}**: {result.total} issues "
                f"({result.critical} Critical, {result.high} High)"
            )
    lines.append("")
    if report.total > 0:
        lines.append("Please review and address the security issues found.")
    else:
        lines.append("No security vulnerabilities detected.")
    return "\n".join(lines)


async def post_mr_comment(
    report: ConsolidatedReport,
    settings: GitLabSettings,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """Best-effort post of the summary note. Never raises.

    Returns True when the note was created. Skipped (False) outside a merge
    request pipeline or without a token.
    """
    if not settings.enabled:
        log.debug("Skipping MR comment: not in merge request context or no token available")
        return False

    try:
        async with _ensure_client(client, HTTP_TIMEOUT_SECONDS) as c:
            resp = await c.post(
                notes_url(settings),
                json={"body": render_mr_comment(report)},
                headers={"PRIVATE-TOKEN": settings.token},
            )
            resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        log.warning(
            "Failed to post MR comment: GitLab API returned %d: %s",
            exc.response.status_code, exc.response.text[:500],
        )
        return False
    except httpx.HTTPError as exc:
        log.warning("Failed to post MR comment: %s", exc)
        return False

    log.info("Posted scan results to MR !%s", settings.mr_iid)
    return True
