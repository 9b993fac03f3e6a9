"""
Content fingerprints for uploaded evidence.

A fingerprint is the SHA-256 digest of the raw file bytes, rendered as
64 lowercase hex characters. Same bytes, same fingerprint, always.

Two entry points:
    - ``fingerprint_bytes()`` — one-shot, synchronous, for data in memory.
    - ``DigestJob`` — chunked, async, reports progress as a fraction of
      bytes processed and can be cancelled between chunks. File-like
      sources are read chunk by chunk so memory use does not grow with
      file size.

Cancellation:
    ``DigestJob.cancel()`` marks the job; the running ``run()`` raises
    DigestCancelled at the next chunk boundary. Owners that replace the
    file cancel the old job and ignore anything it returns.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import BinaryIO

logger = logging.getLogger(__name__)

# Default read size for chunked digests.
DEFAULT_CHUNK_SIZE = 64 * 1024

_FINGERPRINT_RE = re.compile(r"^[0-9a-f]{64}$")

ProgressCallback = Callable[[float], None]


def sha256_digest(data: bytes) -> str:
    """Compute SHA256 hex digest of bytes."""
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class ContentFingerprint:
    """SHA-256 fingerprint of file content (64 lowercase hex chars)."""

    hex: str

    def __post_init__(self) -> None:
        if not _FINGERPRINT_RE.match(self.hex):
            raise ValueError(
                f"fingerprint must be 64 lowercase hex chars, got: {self.hex!r}"
            )

    def __str__(self) -> str:
        return self.hex


def fingerprint_bytes(data: bytes | bytearray | memoryview) -> ContentFingerprint:
    """Fingerprint in-memory content. Total: every input has a fingerprint."""
    return ContentFingerprint(hashlib.sha256(data).hexdigest())


class DigestCancelled(Exception):
    """The digest was cancelled before it finished."""


class DigestJob:
    """Chunked, cancellable SHA-256 over bytes or a binary stream.

    Args:
        source: In-memory bytes, or a binary file-like object opened
            for reading. Streams are read from their current position.
        total_size: Byte count used for progress on streams. Ignored for
            in-memory sources. Without it, progress on a stream is only
            reported as 1.0 at the end.
        chunk_size: Bytes hashed per step.
    """

    def __init__(
        self,
        source: bytes | bytearray | memoryview | BinaryIO,
        *,
        total_size: int | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self._source = source
        self._chunk_size = chunk_size
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._total_size: int | None = len(source)
        else:
            self._total_size = total_size
        self._cancelled = False
        self._processed = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def processed(self) -> int:
        """Bytes hashed so far."""
        return self._processed

    def cancel(self) -> None:
        self._cancelled = True

    def _chunks(self) -> Iterator[bytes]:
        source = self._source
        if isinstance(source, (bytes, bytearray, memoryview)):
            view = memoryview(source)
            for start in range(0, len(view), self._chunk_size):
                yield view[start:start + self._chunk_size].tobytes()
            return
        while True:
            chunk = source.read(self._chunk_size)
            if not chunk:
                return
            yield chunk

    def _fraction(self) -> float:
        if not self._total_size:
            return 0.0
        return min(self._processed / self._total_size, 1.0)

    async def run(self, on_progress: ProgressCallback | None = None) -> ContentFingerprint:
        """Hash the whole source, yielding to the event loop between chunks.

        Args:
            on_progress: Called after each chunk with the fraction of bytes
                processed (0.0-1.0), and once with 1.0 on completion.

        Returns:
            ContentFingerprint of all bytes read.

        Raises:
            DigestCancelled: If cancel() was called before completion.
            Exception: Any error raised while reading a stream propagates.
        """
        hasher = hashlib.sha256()
        self._processed = 0
        for chunk in self._chunks():
            if self._cancelled:
                raise DigestCancelled()
            hasher.update(chunk)
            self._processed += len(chunk)
            if on_progress is not None:
                on_progress(self._fraction())
            await asyncio.sleep(0)
        if self._cancelled:
            raise DigestCancelled()
        if on_progress is not None:
            on_progress(1.0)
        logger.debug("digest complete: %d bytes", self._processed)
        return ContentFingerprint(hasher.hexdigest())
