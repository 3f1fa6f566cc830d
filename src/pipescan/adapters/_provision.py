"""Locate scanner executables and cache the resolved handle.

Resolution order: explicit path, scanner cache directory, ``PATH``.
Downloading binaries is left to the CI image.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from pipescan.ports import ProvisioningError

log = logging.getLogger("pipescan.provision")


class ToolBinary:
    """One external executable, resolved at most once per run."""

    def __init__(
        self,
        name: str,
        *,
        explicit_path: str = "",
        cache_dir: Path | None = None,
    ) -> None:
        self.name = name
        self._explicit = explicit_path
        self._cache_dir = cache_dir
        self._path: Path | None = None

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def is_installed(self) -> bool:
        return self._path is not None

    def install(self) -> Path:
        if self._path is not None:
            return self._path

        for candidate in self._candidates():
            if candidate.is_file() and os.access(candidate, os.X_OK):
                self._path = candidate
                log.info("%s resolved at %s", self.name, candidate)
                return candidate
            if self._explicit and candidate == Path(self._explicit).expanduser():
                log.warning("Configured %s path %s is not executable", self.name, candidate)

        found = shutil.which(self.name)
        if found:
            self._path = Path(found)
            log.info("%s resolved on PATH at %s", self.name, found)
            return self._path

        raise ProvisioningError(
            f"{self.name} not found (set an explicit path, install it into "
            f"{self._cache_dir or 'the scanner cache'}, or add it to PATH)"
        )

    def _candidates(self) -> list[Path]:
        candidates: list[Path] = []
        if self._explicit:
            candidates.append(Path(self._explicit).expanduser())
        if self._cache_dir is not None:
            candidates.append(self._cache_dir / self.name)
        return candidates
