"""Upload validation and staging to a transient directory.

Staged files are always removed when the ``async with`` block exits,
whether processing succeeded or raised.
"""

import hashlib
import re
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from microapis.exceptions import InvalidInputError, PayloadTooLargeError
from microapis.utils.logger import get_logger

logger = get_logger(__name__)

_CHUNK_SIZE = 1024 * 1024

BASIC_EXTENSIONS = frozenset({".png", ".jpeg", ".jpg"})
_EXTENDED_TYPES = re.compile(r"jpeg|jpg|png|pdf")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\- ]", re.ASCII)


def megabytes(value: int) -> int:
    return value * 1024 * 1024


def check_basic_upload(upload: UploadFile | None) -> UploadFile:
    """Require a PNG or JPEG upload judged by file extension."""
    if upload is None:
        raise InvalidInputError('Missing "image" in request')
    suffix = Path(upload.filename or "").suffix.lower()
    if suffix not in BASIC_EXTENSIONS:
        raise InvalidInputError("Only PNG and JPEG images are supported")
    return upload


def check_extended_upload(upload: UploadFile | None) -> UploadFile:
    """Require a JPEG, PNG, or PDF upload by both MIME type and extension."""
    if upload is None:
        raise InvalidInputError("Missing image file in request.")
    suffix = Path(upload.filename or "").suffix.lower()
    mime_ok = bool(_EXTENDED_TYPES.search(upload.content_type or ""))
    ext_ok = bool(_EXTENDED_TYPES.search(suffix))
    if not (mime_ok and ext_ok):
        raise InvalidInputError(
            "File upload only supports the following filetypes - jpeg, jpg, png, pdf"
        )
    return upload


def check_size(buffer: bytes, limit_mb: int) -> bytes:
    if len(buffer) > megabytes(limit_mb):
        raise PayloadTooLargeError(f"Payload exceeds {limit_mb}MB limit")
    return buffer


def attachment_filename(filename: str | None, default: str) -> str:
    """Reduce a client-supplied name to a base name safe for Content-Disposition."""
    name = Path(filename or "").name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip(" .")
    return name or default


def fingerprint(prefix: str, languages: str, payload: bytes) -> str:
    """Cache key derived from the full payload content."""
    digest = hashlib.sha256(payload).hexdigest()
    return f"{prefix}:{languages}:{digest}"


@asynccontextmanager
async def staged_upload(
    upload: UploadFile,
    directory: Path,
    max_bytes: int,
) -> AsyncIterator[Path]:
    """Write an upload to ``directory`` and delete it on exit.

    Args:
        upload: Incoming multipart file.
        directory: Transient upload directory.
        max_bytes: Size ceiling enforced while streaming.

    Yields:
        Path of the staged file.

    Raises:
        PayloadTooLargeError: If the upload exceeds ``max_bytes``.
    """
    await run_in_threadpool(directory.mkdir, parents=True, exist_ok=True)
    name = attachment_filename(upload.filename, "upload")
    path = directory / f"{time.time_ns()}-{name}"
    try:
        written = 0
        out = await run_in_threadpool(path.open, "wb")
        try:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise PayloadTooLargeError(
                        f"File exceeds {max_bytes // (1024 * 1024)}MB limit"
                    )
                await run_in_threadpool(out.write, chunk)
        finally:
            await run_in_threadpool(out.close)
        logger.debug("Staged upload %s (%d bytes)", path, written)
        yield path
    finally:
        await run_in_threadpool(path.unlink, missing_ok=True)
        logger.debug("Removed staged upload %s", path)
