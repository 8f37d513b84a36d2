"""
Debug script: inspect the eye regions the blink detector samples.

Usage:
  1. Save a few webcam frames (JPEG/PNG) to debug_frames/
  2. Run this script: python3 debug_eye_crops.py

For each frame it detects the face, draws the face box and both eye regions,
saves the annotated frame plus upscaled eye crops to debug_eye_crops/, and
prints the per-frame metrics that would be pushed into the blink history.
"""

import os

import cv2
import numpy as np

from models.loader import load_all_models
from processing.face_detection import select_face
from processing.frame_metrics import make_canvas, crop_region, compute_metrics, average_metrics
from processing.regions import eye_regions


def annotate_frame(frame_bgr, face_box):
    """Return (annotated canvas, [left crop, right crop], averaged metrics)."""
    canvas = make_canvas(frame_bgr)
    canvas_h, canvas_w = canvas.shape[:2]
    img_h, img_w = frame_bgr.shape[:2]
    left, right = eye_regions(face_box, (canvas_w, canvas_h), (img_w, img_h))

    crops = [crop_region(canvas, left).copy(), crop_region(canvas, right).copy()]
    metrics = average_metrics([compute_metrics(c) for c in crops])

    annotated = canvas.copy()
    scale = canvas_w / img_w
    if face_box is not None:
        cv2.rectangle(
            annotated,
            (int(face_box.x * scale), int(face_box.y * scale)),
            (int((face_box.x + face_box.width) * scale), int((face_box.y + face_box.height) * scale)),
            (0, 255, 0), 2,
        )
    for region in (left, right):
        cv2.rectangle(
            annotated,
            (int(region.x), int(region.y)),
            (int(region.x + region.width), int(region.y + region.height)),
            (0, 255, 255), 1,
        )
    return annotated, crops, metrics


def _save_crop(crop: np.ndarray, path: str):
    if crop.size == 0:
        return
    big = cv2.resize(crop, (crop.shape[1] * 4, crop.shape[0] * 4), interpolation=cv2.INTER_NEAREST)
    cv2.imwrite(path, big)


def main():
    frames_dir = "debug_frames"
    output_dir = "debug_eye_crops"

    if not os.path.exists(frames_dir):
        print(f"No frames found at {frames_dir}/")
        return

    os.makedirs(output_dir, exist_ok=True)
    frame_files = sorted([f for f in os.listdir(frames_dir) if f.endswith(".jpg") or f.endswith(".png")])
    if not frame_files:
        print(f"No frame images found in {frames_dir}/")
        return

    print(f"Found {len(frame_files)} frames")
    detector = load_all_models().create_face_detector()

    try:
        for idx, fname in enumerate(frame_files):
            frame_bgr = cv2.imread(os.path.join(frames_dir, fname))
            if frame_bgr is None:
                print(f"  Could not read {fname}")
                continue

            face_box = select_face(detector.detect(frame_bgr))
            annotated, (left, right), metrics = annotate_frame(frame_bgr, face_box)

            cv2.imwrite(os.path.join(output_dir, f"frame{idx:03d}_regions.png"), annotated)
            _save_crop(left, os.path.join(output_dir, f"frame{idx:03d}_left_eye.png"))
            _save_crop(right, os.path.join(output_dir, f"frame{idx:03d}_right_eye.png"))

            source = "face" if face_box is not None else "fallback"
            print(f"  {fname}: regions={source}, brightness={metrics.brightness:.3f}, "
                  f"edges={metrics.edge_density:.3f}, contrast={metrics.contrast:.3f}")
    finally:
        detector.close()

    print(f"\nEye crops saved to {output_dir}/")


if __name__ == "__main__":
    main()
