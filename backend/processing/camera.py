import logging
import threading

import cv2
import numpy as np

from processing.errors import CameraUnavailableError

logger = logging.getLogger("uvicorn.error")


class StreamCamera:
    """Camera fed by JPEG frames streamed from the browser.

    Only the latest frame is kept. Frames pushed while the camera is not
    active are discarded.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: np.ndarray | None = None
        self._active = False
        self._closed = False

    @property
    def active(self) -> bool:
        return self._active

    def open(self):
        if self._closed:
            raise CameraUnavailableError("Camera stream is closed")
        with self._lock:
            self._active = True
            self._latest = None

    def push(self, jpeg_bytes: bytes) -> bool:
        """Decode and keep a frame. Returns False when it was dropped."""
        if not self._active:
            return False
        frame = cv2.imdecode(np.frombuffer(jpeg_bytes, np.uint8), cv2.IMREAD_COLOR)
        if frame is None:
            logger.warning("Could not decode frame, dropping it")
            return False
        with self._lock:
            self._latest = frame
        return True

    def read(self) -> np.ndarray | None:
        """Latest frame for analysis, or None if nothing has arrived yet."""
        with self._lock:
            return self._latest

    def snapshot(self) -> np.ndarray:
        """Full-resolution copy of the current frame for the final photo."""
        with self._lock:
            if not self._active or self._latest is None:
                raise CameraUnavailableError("No camera frame available for capture")
            return self._latest.copy()

    def release(self):
        with self._lock:
            self._active = False
            self._latest = None

    def close(self):
        self.release()
        self._closed = True
