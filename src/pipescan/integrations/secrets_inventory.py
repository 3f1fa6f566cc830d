"""Forward detected secrets to an external inventory service.

Payload is a JSON array with one object per secret, file paths padded by
:func:`pipescan.redaction.redact_path` and positions stringified.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import httpx

from pipescan.config import InventorySettings
from pipescan.defaults import SECRETS_API_TIMEOUT_SECONDS
from pipescan.integrations._http import _ensure_client
from pipescan.models import Finding
from pipescan.redaction import redact_path

log = logging.getLogger("pipescan.inventory")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def secret_payload(finding: Finding) -> dict[str, str]:
    raw = finding.raw
    loc = finding.location
    return {
        "RuleID": _text(finding.identifier),
        "Description": finding.text,
        "File": redact_path(loc.path if loc else ""),
        "Match": _text(raw.get("Match")),
        "Secret": _text(raw.get("Secret")),
        "StartLine": _text(loc.start_line if loc else None),
        "EndLine": _text(loc.end_line if loc else None),
        "StartColumn": _text(loc.start_column if loc else None),
        "EndColumn": _text(loc.end_column if loc else None),
    }


def _headers(settings: InventorySettings) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.api_key:
        headers["x-api-key"] = settings.api_key
    if settings.secret_key:
        headers["x-secret-key"] = settings.secret_key
    if settings.tenant_key:
        headers["x-tenant-key"] = settings.tenant_key
    return headers


async def send_secrets(
    findings: Iterable[Finding],
    settings: InventorySettings,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """POST secrets to ``{url}/{project_id}``. Never raises."""
    secrets = [secret_payload(f) for f in findings]
    if not secrets:
        return False
    if not settings.enabled:
        log.warning("Secret inventory URL or PROJECT_ID not set, skipping upload")
        return False

    url = f"{settings.url}/{settings.project_id}"
    log.debug("Sending %d secrets to %s", len(secrets), url)
    try:
        async with _ensure_client(client, SECRETS_API_TIMEOUT_SECONDS) as c:
            resp = await c.post(url, json=secrets, headers=_headers(settings))
            resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        log.warning(
            "Failed to update secrets: status %d, body %s",
            exc.response.status_code, exc.response.text[:500],
        )
        return False
    except httpx.HTTPError as exc:
        log.warning("Error sending secrets to inventory API: %s", exc)
        return False

    log.info("Secrets updated in inventory (%d items)", len(secrets))
    return True
