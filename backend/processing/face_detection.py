import cv2
import numpy as np
import mediapipe as mp

from config import DETECTOR_INPUT_SIZE, DETECTOR_SCORE_THRESHOLD
from processing.errors import DetectorLoadError
from schemas.messages import BBox


class FaceDetector:
    """MediaPipe face detector in IMAGE mode (per-session, not shared across threads)."""

    def __init__(self, model_asset: bytes | None):
        if not model_asset:
            raise DetectorLoadError("Face detection model is not loaded")

        BaseOptions = mp.tasks.BaseOptions
        MPFaceDetector = mp.tasks.vision.FaceDetector
        FaceDetectorOptions = mp.tasks.vision.FaceDetectorOptions
        VisionRunningMode = mp.tasks.vision.RunningMode

        options = FaceDetectorOptions(
            base_options=BaseOptions(model_asset_buffer=model_asset),
            running_mode=VisionRunningMode.IMAGE,
            # Per-call thresholds are applied in detect()
            min_detection_confidence=0.0,
        )
        try:
            self._detector = MPFaceDetector.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise DetectorLoadError(f"Failed to create face detector: {e}") from e

    def detect(
        self,
        frame_bgr: np.ndarray,
        input_size: int = DETECTOR_INPUT_SIZE,
        score_threshold: float = DETECTOR_SCORE_THRESHOLD,
    ) -> list[BBox]:
        """Detect faces on a BGR frame. Boxes are in source-frame pixels."""
        img_h, img_w = frame_bgr.shape[:2]
        scale = min(1.0, input_size / max(img_h, img_w))
        small = frame_bgr
        if scale < 1.0:
            small = cv2.resize(frame_bgr, (max(1, int(img_w * scale)), max(1, int(img_h * scale))))

        frame_rgb = cv2.cvtColor(small, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        result = self._detector.detect(mp_image)

        boxes = []
        for detection in result.detections:
            score = detection.categories[0].score if detection.categories else 0.0
            if score is None or score < score_threshold:
                continue
            bb = detection.bounding_box
            boxes.append(BBox(
                x=bb.origin_x / scale,
                y=bb.origin_y / scale,
                width=bb.width / scale,
                height=bb.height / scale,
            ))
        return boxes

    def close(self):
        self._detector.close()


def select_face(faces: list[BBox]) -> BBox | None:
    """Pick the largest box; ties keep detector order."""
    if not faces:
        return None
    return max(faces, key=lambda box: box.area)
