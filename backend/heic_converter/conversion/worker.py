"""Drives the codec for one accepted upload."""
import asyncio
import logging
from pathlib import Path

from ..artifacts.schemas import ConvertedArtifact
from ..artifacts.store import ArtifactStore
from ..errors import CodecError, ConversionError
from ..intake.schemas import UploadedInput
from .codec import OUTPUT_EXTENSIONS, ImageCodec

logger = logging.getLogger(__name__)


def output_filename(original_name: str, output_format: str) -> str:
    """``vacation.heic`` -> ``vacation.jpg`` for JPEG output."""
    return f"{Path(original_name).stem}{OUTPUT_EXTENSIONS[output_format.upper()]}"


class ConversionWorker:
    """Reads an upload, converts it, and hands the result to the store.

    The worker never deletes its input; the orchestrator does that once
    :meth:`run` returns or raises.

    Args:
        codec: Codec used for the actual pixel work.
        store: Destination for the converted bytes.
        output_format: Pillow format name.
        quality: Encoder quality in ``(0, 1]``.
    """

    def __init__(
        self,
        codec: ImageCodec,
        store: ArtifactStore,
        output_format: str = "JPEG",
        quality: float = 0.9,
    ) -> None:
        self._codec = codec
        self._store = store
        self._output_format = output_format.upper()
        self._quality = quality

    async def run(self, uploaded: UploadedInput) -> ConvertedArtifact:
        """Convert *uploaded* and store the output.

        Raises:
            ConversionError: If the codec rejects the input.
        """
        loop = asyncio.get_running_loop()
        input_bytes = await loop.run_in_executor(None, Path(uploaded.stored_path).read_bytes)

        try:
            output_bytes = await loop.run_in_executor(
                None,
                lambda: self._codec.convert(
                    input_bytes,
                    output_format=self._output_format,
                    quality=self._quality,
                ),
            )
        except CodecError as exc:
            logger.warning("[worker] Codec rejected %s: %s", uploaded.original_name, exc.message)
            raise ConversionError(exc.message) from exc

        filename = output_filename(uploaded.original_name, self._output_format)
        return await self._store.put(output_bytes, filename)
