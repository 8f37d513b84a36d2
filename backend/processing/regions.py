from schemas.messages import BBox
from config import (
    EYE_TOP_FRACTION, EYE_HEIGHT_FRACTION, EYE_WIDTH_FRACTION,
    LEFT_EYE_X_FRACTION, RIGHT_EYE_X_FRACTION,
)


def _scaled(region: BBox, scale: float) -> BBox:
    return BBox(
        x=region.x * scale,
        y=region.y * scale,
        width=region.width * scale,
        height=region.height * scale,
    )


def eye_regions(
    face_box: BBox | None,
    canvas_size: tuple[int, int],
    video_size: tuple[int, int],
) -> tuple[BBox, BBox]:
    """Approximate (left, right) eye rectangles in analysis-canvas coordinates.

    With a face box the eyes sit in a band a quarter of the way down the face.
    Without one, fixed bands around the upper third of the frame are used.
    Sizes are (width, height).
    """
    canvas_w, _ = canvas_size
    video_w, video_h = video_size

    if face_box is not None:
        top = face_box.y + EYE_TOP_FRACTION * face_box.height
        height = EYE_HEIGHT_FRACTION * face_box.height
        width = EYE_WIDTH_FRACTION * face_box.width
        left = BBox(x=face_box.x + LEFT_EYE_X_FRACTION * face_box.width, y=top, width=width, height=height)
        right = BBox(x=face_box.x + RIGHT_EYE_X_FRACTION * face_box.width, y=top, width=width, height=height)
    else:
        width = video_w / 6
        height = video_h / 8
        top = video_h / 3 - height / 2
        left = BBox(x=video_w * 0.4 - width / 2, y=top, width=width, height=height)
        right = BBox(x=video_w * 0.6 - width / 2, y=top, width=width, height=height)

    scale = canvas_w / video_w if video_w else 0.0
    return _scaled(left, scale), _scaled(right, scale)
