from dataclasses import dataclass
from pathlib import Path

from processing.face_detection import FaceDetector


@dataclass
class ModelRegistry:
    face_detector_path: Path | None = None
    face_detector_model: bytes | None = None

    @property
    def face_detector_loaded(self) -> bool:
        return bool(self.face_detector_model)

    def create_face_detector(self) -> FaceDetector:
        """New detector per session; raises DetectorLoadError when the model is missing."""
        return FaceDetector(self.face_detector_model)
