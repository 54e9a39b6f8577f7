"""Pydantic schemas and request states for the conversion flow."""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ConversionState(str, Enum):
    """Lifecycle of a single ``POST /convert`` request.

    ``RECEIVED -> VALIDATED -> CONVERTING -> CONVERTED``; ``FAILED`` is
    reachable from every state before ``CONVERTED``.
    """
    RECEIVED = "received"
    VALIDATED = "validated"
    CONVERTING = "converting"
    CONVERTED = "converted"
    FAILED = "failed"


class ConvertResponse(BaseModel):
    """Response body of a successful conversion."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    message: str = "File converted successfully"
    filename: str = Field(..., description="Suggested download filename")
    download_path: str = Field(..., description="Relative URL of the artifact")
    file_size: int = Field(..., ge=0, description="Exact size of the converted file")
