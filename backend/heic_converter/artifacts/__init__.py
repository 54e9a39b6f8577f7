"""Converted-artifact storage with deferred deletion after download."""
from .schemas import ConvertedArtifact
from .store import ArtifactStore, ExpiringFileResponse

__all__ = ["ArtifactStore", "ConvertedArtifact", "ExpiringFileResponse"]
