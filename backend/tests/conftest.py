import numpy as np
import pytest
from hypothesis import settings

from processing.errors import CameraUnavailableError, PersistenceError
from processing.pipeline import VerificationMachine
from processing.scheduler import ManualScheduler
from schemas.messages import BBox

# CI profile: more examples for thorough testing
settings.register_profile("ci", max_examples=200)
# Dev profile: fewer examples for faster iteration
settings.register_profile("dev", max_examples=100)
settings.load_profile("dev")

FACE = BBox(x=200, y=120, width=240, height=240)


def uniform_frame(value: int, w: int = 640, h: int = 480) -> np.ndarray:
    return np.full((h, w, 3), value, dtype=np.uint8)


class FakeCamera:
    def __init__(self, frame=None, fail_open=False):
        self.frame = frame if frame is not None else uniform_frame(128)
        self.snapshot_frame = None
        self.fail_open = fail_open
        self.active = False
        self.open_calls = 0

    def open(self):
        self.open_calls += 1
        if self.fail_open:
            raise CameraUnavailableError("Permission denied")
        self.active = True

    def read(self):
        return self.frame if self.active else None

    def snapshot(self):
        if not self.active:
            raise CameraUnavailableError("Camera released")
        frame = self.snapshot_frame if self.snapshot_frame is not None else self.frame
        return frame.copy()

    def release(self):
        self.active = False


class FakeDetector:
    def __init__(self, boxes=None):
        self.boxes = list(boxes or [])
        self.calls = []
        self.closed = False

    def detect(self, frame, input_size, score_threshold):
        self.calls.append((input_size, score_threshold))
        return list(self.boxes)

    def close(self):
        self.closed = True


class FakeStore:
    def __init__(self, fail=False):
        self.fail = fail
        self.saved = []

    def save(self, image):
        if self.fail:
            raise PersistenceError("storage offline")
        self.saved.append(image)
        return f"mem://{len(self.saved)}"


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def camera():
    return FakeCamera()


@pytest.fixture
def detector():
    return FakeDetector([FACE])


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def machine(camera, detector, store, scheduler):
    return VerificationMachine(
        camera=camera,
        detector_factory=lambda: detector,
        store=store,
        scheduler=scheduler,
    )
