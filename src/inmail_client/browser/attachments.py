"""Attachment downloads.

Attachments are fetched with their own HTTP client rather than through
``InMailClient``: the bearer token is attached by hand and a failed download
only produces a notice. It never touches the session, the message list or
the selection.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import httpx
import structlog

from inmail_client.api import attachment_path
from inmail_client.config import Settings
from inmail_client.exceptions import DownloadFailedError
from inmail_client.session import SessionManager
from inmail_client.utils import safe_filename, unique_path

logger = structlog.get_logger()

DOWNLOAD_FAILED = "Failed to download attachment"


class AttachmentFetcher:
    """Download attachment payloads and save them locally."""

    def __init__(
        self,
        session: SessionManager,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        on_notice: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            session: Session providing the bearer token.
            settings: Application settings. If None, uses default settings.
            transport: Optional httpx transport, mainly for tests.
            on_notice: Called with a short text when a download fails.
        """
        from inmail_client.config import get_settings

        self.settings = settings or get_settings()
        self._session = session
        self._on_notice = on_notice
        self._http = httpx.AsyncClient(timeout=self.settings.request_timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def download(
        self,
        message_id: str,
        attachment_id: str,
        filename: str,
        directory: Path | None = None,
    ) -> Path | None:
        """Fetch an attachment and save it under the download directory.

        Args:
            message_id: Owning message ID.
            attachment_id: Attachment ID.
            filename: Suggested local filename.
            directory: Target directory. If None, uses settings download_dir.

        Returns:
            Path of the saved file, or None if the download failed.
        """

        logger.info("attachment_download_started", message_id=message_id, attachment_id=attachment_id)
        try:
            payload = await self._fetch(message_id, attachment_id)
            target = await asyncio.to_thread(
                self._save, payload, filename, directory or Path(self.settings.download_dir)
            )
        except DownloadFailedError as exc:
            logger.warning(
                "attachment_download_failed",
                message_id=message_id,
                attachment_id=attachment_id,
                error=str(exc),
            )
            self._notify(DOWNLOAD_FAILED)
            return None

        logger.info("attachment_saved", path=str(target), size=len(payload))
        return target

    async def _fetch(self, message_id: str, attachment_id: str) -> bytes:
        url = self.settings.api_base_url + attachment_path(message_id, attachment_id)
        token = self._session.current_token()
        if not token:
            raise DownloadFailedError("not logged in")
        headers = {"Authorization": f"Bearer {token}"}

        try:
            response = await self._http.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise DownloadFailedError(str(exc)) from exc

        if response.is_error:
            raise DownloadFailedError(f"server returned {response.status_code}")
        return response.content

    def _save(self, payload: bytes, filename: str, directory: Path) -> Path:
        try:
            directory.mkdir(parents=True, exist_ok=True)
            target = unique_path(directory, safe_filename(filename))
            target.write_bytes(payload)
        except OSError as exc:
            raise DownloadFailedError(f"could not save {filename!r}: {exc}") from exc
        return target

    def _notify(self, text: str) -> None:
        if self._on_notice is not None:
            self._on_notice(text)
