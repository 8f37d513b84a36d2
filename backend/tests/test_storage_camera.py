import cv2
import numpy as np
import pytest

from processing.camera import StreamCamera
from processing.errors import CameraUnavailableError, PersistenceError
from processing.storage import FileImageStore


def _jpeg(value=120):
    ok, buf = cv2.imencode(".jpg", np.full((48, 64, 3), value, dtype=np.uint8))
    assert ok
    return buf.tobytes()


class TestFileImageStore:
    def test_save_writes_file(self, tmp_path):
        store = FileImageStore(tmp_path / "captures")
        location = store.save(b"\xff\xd8jpeg")
        with open(location, "rb") as f:
            assert f.read() == b"\xff\xd8jpeg"

    def test_empty_image_rejected(self, tmp_path):
        with pytest.raises(PersistenceError):
            FileImageStore(tmp_path).save(b"")

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(PersistenceError):
            FileImageStore(blocker / "captures").save(b"data")


class TestStreamCamera:
    def test_frames_dropped_until_opened(self):
        camera = StreamCamera()
        assert camera.push(_jpeg()) is False
        assert camera.read() is None

    def test_keeps_latest_frame(self):
        camera = StreamCamera()
        camera.open()
        assert camera.push(_jpeg(10))
        assert camera.push(_jpeg(200))
        assert camera.read().shape == (48, 64, 3)
        assert camera.read().mean() > 150

    def test_undecodable_frame_dropped(self):
        camera = StreamCamera()
        camera.open()
        assert camera.push(b"not a jpeg") is False
        assert camera.read() is None

    def test_snapshot_is_a_copy(self):
        camera = StreamCamera()
        camera.open()
        camera.push(_jpeg())
        snap = camera.snapshot()
        snap[:] = 0
        assert camera.read().mean() > 0

    def test_snapshot_without_frame(self):
        camera = StreamCamera()
        camera.open()
        with pytest.raises(CameraUnavailableError):
            camera.snapshot()

    def test_release_clears_frame(self):
        camera = StreamCamera()
        camera.open()
        camera.push(_jpeg())
        camera.release()
        assert camera.read() is None
        assert not camera.active

    def test_closed_camera_cannot_reopen(self):
        camera = StreamCamera()
        camera.close()
        with pytest.raises(CameraUnavailableError):
            camera.open()
