"""Upload validation and temporary storage.

Uploads are stored as ``{upload_dir}/{uuid4}-{original_name}``. A file is
accepted when its extension OR its declared media type is on the allow-list,
and its size does not exceed the configured ceiling. Oversized payloads are
copied chunk by chunk and the partial file is removed as soon as the ceiling
is crossed. File writes run in the default thread-pool executor.
"""
import asyncio
import logging
import uuid
from pathlib import Path
from typing import Iterable, Optional

from fastapi import UploadFile

from ..config import MIB
from ..errors import ValidationError
from ..fs import remove_file_quietly
from .schemas import UploadedInput

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

NO_FILE_MESSAGE = "No file uploaded"
WRONG_TYPE_MESSAGE = "Only HEIC/HEIF files are allowed"


def _base_name(filename: str) -> str:
    """Drop any directory components a client may have sent."""
    return Path(filename.replace("\\", "/")).name.strip()


def _format_limit(size_bytes: int) -> str:
    if size_bytes >= MIB and size_bytes % MIB == 0:
        return f"{size_bytes // MIB}MB"
    return f"{size_bytes} bytes"


def _media_type(content_type: Optional[str]) -> str:
    if not content_type:
        return "application/octet-stream"
    return content_type.split(";", 1)[0].strip().lower()


class UploadIntake:
    """Validates uploads and persists them for conversion.

    Args:
        upload_dir: Directory for temporary upload files.
        max_file_size_bytes: Size ceiling, inclusive.
        allowed_extensions: Lower-case extensions including the dot.
        allowed_mime_types: Lower-case media types.
    """

    def __init__(
        self,
        upload_dir: str,
        max_file_size_bytes: int,
        allowed_extensions: Iterable[str],
        allowed_mime_types: Iterable[str],
    ) -> None:
        self._upload_dir = Path(upload_dir)
        self._max_size = max_file_size_bytes
        self._allowed_extensions = frozenset(ext.lower() for ext in allowed_extensions)
        self._allowed_mime_types = frozenset(mime.lower() for mime in allowed_mime_types)
        self._upload_dir.mkdir(parents=True, exist_ok=True)

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    @property
    def too_large_message(self) -> str:
        return f"File too large. Maximum size is {_format_limit(self._max_size)}."

    def is_allowed(self, filename: str, mime_type: str) -> bool:
        """Extension or declared media type must be on the allow-list."""
        return (
            Path(filename).suffix.lower() in self._allowed_extensions
            or mime_type in self._allowed_mime_types
        )

    async def accept(self, upload: Optional[UploadFile]) -> UploadedInput:
        """Validate *upload* and copy it to temporary storage.

        Raises:
            ValidationError: No file, disallowed type, or over the size ceiling.
        """
        if upload is None or not upload.filename or not _base_name(upload.filename):
            raise ValidationError(NO_FILE_MESSAGE)

        original_name = _base_name(upload.filename)
        mime_type = _media_type(upload.content_type)
        if not self.is_allowed(original_name, mime_type):
            logger.info("[intake] Rejected %s (%s): not HEIC/HEIF", original_name, mime_type)
            raise ValidationError(WRONG_TYPE_MESSAGE)

        if upload.size is not None and upload.size > self._max_size:
            logger.info("[intake] Rejected %s: %d bytes over limit", original_name, upload.size)
            raise ValidationError(self.too_large_message)

        token = str(uuid.uuid4())
        stored_path = self._upload_dir / f"{token}-{original_name}"
        size_bytes = await self._copy_limited(upload, stored_path)

        logger.info("[intake] Accepted %s (%d bytes) as %s", original_name, size_bytes, token)
        return UploadedInput(
            id=token,
            original_name=original_name,
            stored_path=str(stored_path),
            size_bytes=size_bytes,
            declared_mime_type=mime_type,
        )

    async def _copy_limited(self, upload: UploadFile, target: Path) -> int:
        loop = asyncio.get_running_loop()
        written = 0
        try:
            fh = await loop.run_in_executor(None, target.open, "wb")
            try:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self._max_size:
                        raise ValidationError(self.too_large_message)
                    await loop.run_in_executor(None, fh.write, chunk)
            finally:
                await loop.run_in_executor(None, fh.close)
        except BaseException:
            remove_file_quietly(target)
            raise
        return written

    def discard(self, uploaded: UploadedInput) -> None:
        """Delete the stored upload. Best-effort: failures are only logged."""
        if remove_file_quietly(uploaded.stored_path):
            logger.debug("[intake] Removed input %s", uploaded.id)
