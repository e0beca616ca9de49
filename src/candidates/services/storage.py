"""Resume object storage on top of Django's storage API."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import Storage, default_storage

from src.candidates.errors import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


@dataclass(frozen=True)
class StoredFile:
    path: str
    url: str


def sanitize_file_name(file_name: str) -> str:
    return _UNSAFE_CHARS.sub("_", file_name or "resume")


class ResumeStorage:
    def __init__(self, storage: Storage | None = None, *, prefix: str | None = None):
        self.storage = storage or default_storage
        self.prefix = prefix if prefix is not None else settings.RESUME_STORAGE_PREFIX

    def build_key(self, file_name: str) -> str:
        return f"{self.prefix}{int(time.time() * 1000)}_{sanitize_file_name(file_name)}"

    def upload(self, file_name: str, data: bytes, content_type: str | None = None) -> StoredFile:
        key = self.build_key(file_name)
        try:
            # Storage.save picks a free name if the key already exists, so nothing is overwritten.
            path = self.storage.save(key, ContentFile(data, name=key))
            url = self.storage.url(path)
        except Exception as exc:
            logger.exception("Upload failed for %s", file_name)
            raise StorageError(f"Upload failed: {exc}") from exc

        logger.info("Stored %s (%s) at %s", file_name, content_type or "unknown type", path)
        return StoredFile(path=path, url=url)

    def remove(self, paths: list[str]) -> None:
        """Best-effort delete used by compensating cleanups."""
        for path in paths:
            try:
                self.storage.delete(path)
            except Exception:  # noqa: BLE001
                logger.exception("Could not remove stored file %s", path)
