import logging
from pathlib import Path

from config import FACE_DETECTOR_PATH
from models.registry import ModelRegistry

logger = logging.getLogger("uvicorn.error")


def _load_model_asset(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except OSError as e:
        logger.error(f"Could not read face detector model {path}: {e}")
        return None


def load_all_models(face_detector_path: Path = FACE_DETECTOR_PATH) -> ModelRegistry:
    registry = ModelRegistry(face_detector_path=face_detector_path)

    logger.info(f"Loading face detector: {face_detector_path}")
    registry.face_detector_model = _load_model_asset(face_detector_path)
    if registry.face_detector_loaded:
        logger.info(f"Face detector loaded ({len(registry.face_detector_model)} bytes)")
    else:
        logger.warning("Face detector unavailable, scan sessions will fail to start")

    return registry
