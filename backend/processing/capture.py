import cv2
import numpy as np

from config import CROP_PADDING, JPEG_QUALITY
from schemas.messages import BBox


def rescale_box(face_box: BBox, source_size: tuple[int, int], target_size: tuple[int, int]) -> BBox:
    """Map a box from the analysed frame onto a frame of another resolution."""
    src_w, src_h = source_size
    dst_w, dst_h = target_size
    if (src_w, src_h) == (dst_w, dst_h) or not src_w or not src_h:
        return face_box
    sx = dst_w / src_w
    sy = dst_h / src_h
    return BBox(x=face_box.x * sx, y=face_box.y * sy, width=face_box.width * sx, height=face_box.height * sy)


def crop_rect(face_box: BBox, image_size: tuple[int, int], padding: int = CROP_PADDING) -> tuple[int, int, int, int]:
    """Padded face rectangle (x, y, width, height) clamped to the image."""
    img_w, img_h = image_size
    x = max(0, int(face_box.x - padding))
    y = max(0, int(face_box.y - padding))
    width = min(img_w - x, int(face_box.width + padding * 2))
    height = min(img_h - y, int(face_box.height + padding * 2))
    return x, y, max(0, width), max(0, height)


def crop_face(frame_bgr: np.ndarray, face_box: BBox | None, padding: int = CROP_PADDING) -> np.ndarray:
    """Crop to the padded face, or keep the full frame without a usable box."""
    if face_box is None:
        return frame_bgr
    img_h, img_w = frame_bgr.shape[:2]
    x, y, w, h = crop_rect(face_box, (img_w, img_h), padding)
    if w == 0 or h == 0:
        return frame_bgr
    return frame_bgr[y:y+h, x:x+w]


def encode_jpeg(image_bgr: np.ndarray, quality: int = JPEG_QUALITY) -> bytes:
    ok, buf = cv2.imencode(".jpg", image_bgr, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ValueError("Could not encode captured image")
    return buf.tobytes()


def capture_face_image(
    frame_bgr: np.ndarray,
    face_box: BBox | None,
    analysed_size: tuple[int, int] | None = None,
) -> bytes:
    """Crop the high-resolution frame around the face and encode it as JPEG."""
    if face_box is not None and analysed_size is not None:
        img_h, img_w = frame_bgr.shape[:2]
        face_box = rescale_box(face_box, analysed_size, (img_w, img_h))
    return encode_jpeg(crop_face(frame_bgr, face_box))
