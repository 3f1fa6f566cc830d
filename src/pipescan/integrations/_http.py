"""Shared httpx helpers for the integrations."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx


@asynccontextmanager
async def _ensure_client(
    client: httpx.AsyncClient | None, timeout: float,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield *client* as-is, or create a temporary ``AsyncClient``."""
    if client is not None:
        yield client
    else:
        async with httpx.AsyncClient(timeout=timeout) as c:
            yield c
