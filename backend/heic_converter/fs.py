"""Small filesystem helpers shared by intake and the artifact store."""
import logging
from pathlib import Path
from typing import Union

from .errors import CleanupError

logger = logging.getLogger(__name__)


def remove_file(path: Union[str, Path]) -> bool:
    """Delete *path*.

    Returns:
        True if a file was removed, False if it was already gone.

    Raises:
        CleanupError: If the file exists but could not be deleted.
    """
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise CleanupError(f"Could not delete {Path(path).name}: {exc.strerror or exc}") from exc
    return True


def remove_file_quietly(path: Union[str, Path]) -> bool:
    """Best-effort :func:`remove_file`; failures are logged, never raised."""
    try:
        return remove_file(path)
    except CleanupError as exc:
        logger.error("Cleanup error: %s", exc.message)
        return False
