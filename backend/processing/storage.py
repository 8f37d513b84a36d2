import logging
import uuid
from pathlib import Path

from config import CAPTURE_DIR
from processing.errors import PersistenceError

logger = logging.getLogger("uvicorn.error")


class FileImageStore:
    """Persists captured face photos as JPEG files."""

    def __init__(self, directory: Path = CAPTURE_DIR):
        self.directory = Path(directory)

    def save(self, image: bytes) -> str:
        if not image:
            raise PersistenceError("Refusing to save an empty image")
        path = self.directory / f"{uuid.uuid4().hex}.jpg"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(image)
        except OSError as e:
            raise PersistenceError(f"Failed to save biometric data: {e}") from e
        logger.info(f"Saved biometric capture to {path} ({len(image)} bytes)")
        return str(path)
