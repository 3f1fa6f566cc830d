"""Path redaction policy for secret findings.

Drops matches that are noise in CI (dependency manifests, vendored
dependencies, ``$VAR`` placeholders) and pads file paths before they leave
the pipeline.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from pipescan.defaults import (
    ENV_PLACEHOLDER_PATTERN,
    REDACTED_PATH_SEGMENTS,
    SKIPPED_MANIFESTS,
    VENDOR_DIRS,
)

_PLACEHOLDER_RE = re.compile(ENV_PLACEHOLDER_PATTERN)


@dataclass(frozen=True)
class RedactionPolicy:
    skipped_manifests: frozenset[str] = SKIPPED_MANIFESTS
    vendor_dirs: frozenset[str] = VENDOR_DIRS

    def is_skipped_file(self, path: str) -> bool:
        parts = PurePosixPath(path.replace("\\", "/")).parts
        if not parts:
            return False
        if parts[-1] in self.skipped_manifests:
            return True
        return any(part in self.vendor_dirs for part in parts[:-1])

    def excludes(self, path: str, match: str) -> bool:
        """True when a secret match at *path* should be dropped."""
        return self.is_skipped_file(path) or looks_like_placeholder(match)


DEFAULT_POLICY = RedactionPolicy()


def looks_like_placeholder(match: str) -> bool:
    # e.g. ${API_KEY}, "$TOKEN", password = "${DB_PASS}"
    return bool(match) and _PLACEHOLDER_RE.search(match) is not None


def redact_path(path: str | None) -> str:
    """Left-pad *path* with empty segments to at least eight ``/``-separated parts."""
    if not path:
        return "/" * (REDACTED_PATH_SEGMENTS - 1)
    segments = path.split("/")
    missing = REDACTED_PATH_SEGMENTS - len(segments)
    if missing > 0:
        segments = [""] * missing + segments
    return "/".join(segments)
