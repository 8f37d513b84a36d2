from dataclasses import dataclass

import cv2
import numpy as np

from schemas.messages import BBox
from config import CANVAS_SCALE, EDGE_THRESHOLD

# Rec. 601 luma weights
LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114


@dataclass
class FrameMetrics:
    brightness: float = 0.0
    edge_density: float = 0.0
    contrast: float = 0.0


def luminance(pixels: np.ndarray, channel_order: str = "bgr") -> np.ndarray:
    """Per-pixel luminance on a 0-255 scale. Alpha channels are ignored."""
    if pixels.ndim == 2:
        return pixels.astype(np.float64)
    px = pixels[..., :3].astype(np.float64)
    if channel_order == "bgr":
        b, g, r = px[..., 0], px[..., 1], px[..., 2]
    elif channel_order == "rgb":
        r, g, b = px[..., 0], px[..., 1], px[..., 2]
    else:
        raise ValueError(f"Unsupported channel order: {channel_order}")
    return LUMA_R * r + LUMA_G * g + LUMA_B * b


def compute_metrics(
    pixels: np.ndarray,
    channel_order: str = "bgr",
    edge_threshold: float = EDGE_THRESHOLD,
) -> FrameMetrics:
    """Brightness, edge density and contrast of one eye region.

    Only interior pixels are sampled so every pixel has four neighbours.
    Regions without interior pixels give all-zero metrics.
    """
    if pixels.ndim < 2:
        return FrameMetrics()
    h, w = pixels.shape[:2]
    if h < 3 or w < 3:
        return FrameMetrics()

    lum = luminance(pixels, channel_order)
    brightness = lum[1:-1, 1:-1] / 255.0

    horizontal = np.abs(lum[1:-1, 2:] - lum[1:-1, :-2])
    vertical = np.abs(lum[2:, 1:-1] - lum[:-2, 1:-1])
    edge_count = np.count_nonzero((horizontal > edge_threshold) | (vertical > edge_threshold))

    return FrameMetrics(
        brightness=float(brightness.mean()),
        edge_density=edge_count / (w * h),
        contrast=float(brightness.std()),
    )


def average_metrics(samples: list[FrameMetrics]) -> FrameMetrics:
    if not samples:
        return FrameMetrics()
    n = len(samples)
    return FrameMetrics(
        brightness=sum(s.brightness for s in samples) / n,
        edge_density=sum(s.edge_density for s in samples) / n,
        contrast=sum(s.contrast for s in samples) / n,
    )


def crop_region(canvas: np.ndarray, region: BBox) -> np.ndarray:
    """Slice a region out of the canvas, clamped to its bounds. May be empty."""
    img_h, img_w = canvas.shape[:2]
    x1 = max(0, int(region.x))
    y1 = max(0, int(region.y))
    x2 = min(img_w, int(region.x + region.width))
    y2 = min(img_h, int(region.y + region.height))
    if x2 <= x1 or y2 <= y1:
        return canvas[0:0, 0:0]
    return canvas[y1:y2, x1:x2]


def make_canvas(frame_bgr: np.ndarray, scale: float = CANVAS_SCALE) -> np.ndarray:
    """Downscaled analysis copy of the source frame."""
    h, w = frame_bgr.shape[:2]
    size = (max(1, int(w * scale)), max(1, int(h * scale)))
    return cv2.resize(frame_bgr, size, interpolation=cv2.INTER_AREA)


def eye_metrics(canvas: np.ndarray, left: BBox, right: BBox) -> FrameMetrics:
    """Per-frame sample: the mean of both eyes' metrics."""
    return average_metrics([
        compute_metrics(crop_region(canvas, left)),
        compute_metrics(crop_region(canvas, right)),
    ])
