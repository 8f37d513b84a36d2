from pydantic import BaseModel


class BBox(BaseModel):
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)


class EyeRegions(BaseModel):
    left: BBox
    right: BBox


class BlinkStatus(BaseModel):
    blink_count: int
    blink_confirmed: bool


class MovementStatus(BaseModel):
    movement_score: int
    movement_confirmed: bool


class StatusResponse(BaseModel):
    type: str = "status"
    step: str
    instruction: str
    status_message: str
    face_detected: bool
    face_lost: bool
    face_box: BBox | None = None
    countdown: int | None = None
    blink: BlinkStatus
    movement: MovementStatus
    has_captured_image: bool = False
    saved_location: str | None = None
    error: str | None = None


class CommandAck(BaseModel):
    type: str = "command_ack"
    command: str
    accepted: bool
    step: str
