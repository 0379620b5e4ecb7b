"""Shared state of S3 multipart uploads written by several workers.

Workers that write different parts of the same object share one multipart
upload. The store hands out the upload ID, tracks the bytes that have been
completed so the last worker knows when to send the completion request, and
yields leftover uploads so they can be aborted after an interruption.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Any

from benchkit.logger import LogLevel, log

__all__ = ["UploadError", "UploadKey", "S3UploadStore"]


class UploadError(Exception):
    """Raised when a multipart upload could not be created."""


@total_ordering
@dataclass(frozen=True)
class UploadKey:
    """Bucket and object name of a shared upload.

    Keys order by object name length, then object name, then bucket name.
    """

    bucket: str
    object_name: str

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, UploadKey):
            return NotImplemented
        return (len(self.object_name), self.object_name, self.bucket) < (
            len(other.object_name),
            other.object_name,
            other.bucket,
        )


@dataclass
class _UploadState:
    upload_id: str
    num_bytes_done: int = 0
    completed_parts: list[Any] = field(default_factory=list)


class S3UploadStore:
    """Thread-safe registry of unfinished shared multipart uploads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._uploads: dict[UploadKey, _UploadState] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._uploads)

    def get_multipart_upload_id(
        self,
        bucket: str,
        object_name: str,
        create_upload: Callable[[str, str], str],
    ) -> str:
        """Return the upload ID of the object, creating the upload if needed.

        ``create_upload(bucket, object_name)`` is called at most once per
        object to obtain a new upload ID from the server. Any error it raises
        is reported as UploadError.
        """
        key = UploadKey(bucket, object_name)

        with self._lock:
            state = self._uploads.get(key)
            if state is not None:
                return state.upload_id

            try:
                upload_id = create_upload(bucket, object_name)
            except Exception as err:
                raise UploadError(
                    "Multipart upload creation failed. "
                    f"Bucket: {bucket}; "
                    f"Exception: {type(err).__name__}; "
                    f"Message: {err}"
                ) from err

            self._uploads[key] = _UploadState(upload_id)
            return upload_id

    def add_completed_part(
        self,
        bucket: str,
        object_name: str,
        num_progress_bytes: int,
        object_total_size: int,
        part: Any,
    ) -> list[Any] | None:
        """Record a completed part.

        Returns None while the object is unfinished or its upload was already
        removed. Once ``object_total_size`` bytes are done, the upload is
        removed and all its completed parts are returned; the caller sorts
        them by part number and sends the completion request.
        """
        key = UploadKey(bucket, object_name)

        with self._lock:
            state = self._uploads.get(key)
            if state is None:
                log(
                    LogLevel.DEBUG,
                    "Rejecting part add of aborted upload. "
                    f"Bucket: {bucket}; Object: {object_name}; \n",
                )
                return None

            state.completed_parts.append(part)
            state.num_bytes_done += num_progress_bytes

            if state.num_bytes_done < object_total_size:
                return None

            del self._uploads[key]
            return state.completed_parts

    def pop_unfinished_upload(self) -> tuple[str, str, str] | None:
        """Remove and return the first unfinished upload in key order.

        Returns ``(bucket, object_name, upload_id)``, or None if none is left.
        The caller is responsible for aborting the upload on the server.
        """
        with self._lock:
            if not self._uploads:
                return None
            key = min(self._uploads)
            state = self._uploads.pop(key)
            return key.bucket, key.object_name, state.upload_id