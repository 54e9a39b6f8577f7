"""Upload intake: validation and temporary storage of incoming files."""
from .schemas import UploadedInput
from .service import UploadIntake

__all__ = ["UploadIntake", "UploadedInput"]
