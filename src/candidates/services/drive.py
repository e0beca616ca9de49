"""Fetch resumes picked from Google Drive with a caller-supplied access token."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

import requests
from django.conf import settings

from src.candidates.errors import DownloadError

logger = logging.getLogger(__name__)

# Drive-native formats have no binary content; they are exported to PDF instead.
GOOGLE_NATIVE_TYPES = {
    "application/vnd.google-apps.document",
    "application/vnd.google-apps.spreadsheet",
}
_EXTENSION = re.compile(r"\.[^.]+$")


@dataclass(frozen=True)
class DriveFile:
    id: str
    name: str
    mime_type: str = ""
    url: str | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "DriveFile":
        return cls(
            id=payload["id"],
            name=payload.get("name") or payload["id"],
            mime_type=payload.get("mime_type") or payload.get("mimeType") or "",
            url=payload.get("url") or payload.get("webViewLink"),
        )


@dataclass(frozen=True)
class DownloadedFile:
    name: str
    data: bytes
    content_type: str | None = None


def drive_download_target(file: DriveFile, api_base: str | None = None) -> tuple[str, str]:
    """Return ``(url, file_name)`` to fetch; native Docs/Sheets are exported as PDF."""
    api_base = (api_base or settings.DRIVE_API_BASE).rstrip("/")
    if file.mime_type in GOOGLE_NATIVE_TYPES:
        return (
            f"{api_base}/files/{file.id}/export?mimeType=application/pdf",
            _EXTENSION.sub("", file.name) + ".pdf",
        )
    return f"{api_base}/files/{file.id}?alt=media", file.name


def download_drive_file(
    file: DriveFile,
    access_token: str,
    *,
    session: requests.Session | None = None,
    timeout: float | None = None,
) -> DownloadedFile:
    url, file_name = drive_download_target(file)
    http = session or requests.Session()
    logger.info("Downloading Drive file %s (%s)", file.id, file.mime_type or "unknown type")
    try:
        response = http.get(
            url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout or settings.DOWNLOAD_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        raise DownloadError(f"Failed to download from Drive: {exc}") from exc

    if not response.ok:
        logger.error(
            "Drive API error (%s) for %s: %.200s", response.status_code, file.id, response.text
        )
        raise DownloadError(
            f"Failed to download from Drive: {response.status_code} {response.reason}"
        )

    content_type = "application/pdf" if file.mime_type in GOOGLE_NATIVE_TYPES else None
    return DownloadedFile(
        name=file_name,
        data=response.content,
        content_type=content_type or response.headers.get("Content-Type"),
    )
