from __future__ import annotations

import logging
import os
from typing import Optional

import httpx

DEFAULT_NOTES_URL = (
    "https://raw.githubusercontent.com/pankajmutha14/10th-june-java-notes/main/"
    "10th%20June%20java%20-%20psa%20-%20notes.txt"
)

logger = logging.getLogger("javatyper.notes")


class NotesUnavailable(RuntimeError):
    """The notes document could not be fetched."""


class NotesService:
    """Fetches the raw lecture-notes document over HTTP."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url or os.getenv("NOTES_URL") or DEFAULT_NOTES_URL
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self) -> str:
        if self._client is None:
            await self.start()
        assert self._client is not None
        try:
            response = await self._client.get(self.url, headers={"Cache-Control": "no-store"})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Notes fetch from %s failed: %s", self.url, exc)
            raise NotesUnavailable(f"Failed to fetch notes: {exc}") from exc
        return response.text
