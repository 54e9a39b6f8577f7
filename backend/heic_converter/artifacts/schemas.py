"""Pydantic schemas for converted artifacts."""
import time

from pydantic import BaseModel, Field


class ConvertedArtifact(BaseModel):
    """A converted file waiting in temporary storage to be downloaded.

    The id is generated by the store and has no relation to the id of the
    upload it was converted from.
    """
    id: str = Field(..., description="Opaque artifact id used in download paths")
    filename: str = Field(..., description="Download filename, e.g. vacation.jpg")
    stored_path: str = Field(..., description="Absolute path on disk")
    size_bytes: int = Field(..., ge=0, description="Exact size of the stored file")
    created_at: float = Field(default_factory=time.time, description="Creation timestamp")
