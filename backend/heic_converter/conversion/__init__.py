"""HEIC/HEIF to JPEG conversion: codec, worker and request orchestration."""
from .codec import ImageCodec, PillowHeifCodec
from .orchestrator import ConversionOrchestrator
from .schemas import ConversionState, ConvertResponse
from .worker import ConversionWorker

__all__ = [
    "ConversionOrchestrator",
    "ConversionState",
    "ConversionWorker",
    "ConvertResponse",
    "ImageCodec",
    "PillowHeifCodec",
]
