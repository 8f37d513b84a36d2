import cv2
import numpy as np
import pytest

from processing.capture import crop_rect, crop_face, rescale_box, capture_face_image, encode_jpeg
from schemas.messages import BBox


class TestCropRect:
    def test_padded_face_inside_frame(self):
        face = BBox(x=100, y=100, width=200, height=200)
        assert crop_rect(face, (640, 480)) == (50, 50, 300, 300)

    def test_clamped_at_origin(self):
        face = BBox(x=20, y=10, width=100, height=100)
        assert crop_rect(face, (640, 480)) == (0, 0, 200, 200)

    def test_clamped_at_far_edges(self):
        face = BBox(x=600, y=440, width=100, height=100)
        assert crop_rect(face, (640, 480)) == (550, 390, 90, 90)


class TestCropFace:
    def test_crop_shape(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        crop = crop_face(frame, BBox(x=100, y=100, width=200, height=200))
        assert crop.shape == (300, 300, 3)

    def test_full_frame_without_face(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        assert crop_face(frame, None) is frame

    def test_box_outside_frame_keeps_full_frame(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        assert crop_face(frame, BBox(x=900, y=900, width=50, height=50)).shape == frame.shape


class TestRescale:
    def test_same_size_is_unchanged(self):
        face = BBox(x=10, y=20, width=30, height=40)
        assert rescale_box(face, (640, 480), (640, 480)) is face

    def test_doubled_resolution(self):
        face = BBox(x=10, y=20, width=30, height=40)
        scaled = rescale_box(face, (320, 240), (640, 480))
        assert scaled.model_dump() == pytest.approx({"x": 20, "y": 40, "width": 60, "height": 80})


class TestCaptureFaceImage:
    def test_encodes_cropped_jpeg(self):
        frame = np.full((480, 640, 3), 90, dtype=np.uint8)
        data = capture_face_image(frame, BBox(x=100, y=100, width=200, height=200), (640, 480))
        decoded = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (300, 300, 3)

    def test_maps_face_box_onto_high_res_frame(self):
        frame = np.full((960, 1280, 3), 90, dtype=np.uint8)
        data = capture_face_image(frame, BBox(x=100, y=100, width=200, height=200), (640, 480))
        decoded = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (500, 500, 3)

    def test_full_frame_without_face(self):
        frame = np.full((480, 640, 3), 90, dtype=np.uint8)
        decoded = cv2.imdecode(np.frombuffer(capture_face_image(frame, None), np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (480, 640, 3)

    def test_encode_jpeg_magic(self):
        assert encode_jpeg(np.zeros((8, 8, 3), dtype=np.uint8))[:2] == b"\xff\xd8"
