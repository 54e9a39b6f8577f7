"""Pydantic schemas for accepted uploads."""
from pydantic import BaseModel, Field


class UploadedInput(BaseModel):
    """An upload that passed validation and was written to temporary storage.

    Owned by the conversion request that produced it and deleted as soon
    as that conversion finishes, successfully or not. Never exposed to
    clients.
    """
    id: str = Field(..., description="Unique storage token (uuid4)")
    original_name: str = Field(..., description="Client filename, base name only")
    stored_path: str = Field(..., description="Absolute path of the stored bytes")
    size_bytes: int = Field(..., ge=0, description="Number of bytes stored")
    declared_mime_type: str = Field(..., description="Content type sent by the client")
