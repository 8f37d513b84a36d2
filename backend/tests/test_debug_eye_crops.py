import numpy as np
import pytest

from debug_eye_crops import annotate_frame
from schemas.messages import BBox


def test_annotate_with_face():
    frame = np.full((480, 640, 3), 128, dtype=np.uint8)
    annotated, crops, metrics = annotate_frame(frame, BBox(x=100, y=100, width=200, height=200))
    assert annotated.shape == (240, 320, 3)
    assert [c.shape for c in crops] == [(20, 30, 3), (20, 30, 3)]
    assert metrics.brightness == pytest.approx(128 / 255)
    assert metrics.edge_density == 0


def test_annotate_uses_fallback_regions():
    frame = np.full((480, 640, 3), 128, dtype=np.uint8)
    _, crops, metrics = annotate_frame(frame, None)
    assert all(c.size > 0 for c in crops)
    assert metrics.brightness == pytest.approx(128 / 255)
