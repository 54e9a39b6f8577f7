"""Image codec interface and the Pillow/pillow-heif implementation.

The rest of the service treats decoding and encoding as an opaque
capability: bytes in, bytes out, :class:`CodecError` on bad input.
"""
from abc import ABC, abstractmethod
from io import BytesIO

import pillow_heif
from PIL import Image, UnidentifiedImageError

from ..errors import CodecError

pillow_heif.register_heif_opener()

# File extension used for each supported output format.
OUTPUT_EXTENSIONS = {
    "JPEG": ".jpg",
    "PNG": ".png",
}

OUTPUT_MEDIA_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
}


class ImageCodec(ABC):
    """Abstract base class for image codecs.

    Implementations must be thread-safe: the conversion worker calls
    ``convert()`` from the default thread-pool executor.
    """

    @abstractmethod
    def convert(self, input_bytes: bytes, output_format: str = "JPEG", quality: float = 0.9) -> bytes:
        """Decode *input_bytes* and re-encode them as *output_format*.

        Args:
            input_bytes: Complete source file contents.
            output_format: Pillow format name, ``"JPEG"`` by default.
            quality: Encoder quality in ``(0, 1]``.

        Returns:
            The encoded output file.

        Raises:
            CodecError: If the input is malformed or the variant unsupported.
        """


class PillowHeifCodec(ImageCodec):
    """Decodes HEIC/HEIF through pillow-heif and encodes with Pillow."""

    def convert(self, input_bytes: bytes, output_format: str = "JPEG", quality: float = 0.9) -> bytes:
        output_format = output_format.upper()
        if output_format not in OUTPUT_EXTENSIONS:
            raise CodecError(f"Unsupported output format: {output_format}")
        if not input_bytes:
            raise CodecError("Input is empty")

        try:
            with Image.open(BytesIO(input_bytes)) as image:
                image.load()
                if output_format == "JPEG" and image.mode != "RGB":
                    image = image.convert("RGB")
                buffer = BytesIO()
                image.save(buffer, format=output_format, quality=int(round(quality * 100)))
        except UnidentifiedImageError:
            raise CodecError("Input is not a recognised HEIC/HEIF image") from None
        except (OSError, ValueError, RuntimeError, SyntaxError) as exc:
            raise CodecError(f"Could not decode image: {exc}") from exc

        return buffer.getvalue()
