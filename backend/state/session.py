from enum import Enum
from dataclasses import dataclass, field

from processing.history import MetricHistory, PositionHistory
from schemas.messages import BBox


class VerificationStep(str, Enum):
    IDLE = "idle"
    FACE = "face"
    BLINK = "blink"
    MOVE = "move"
    COMPLETE = "complete"
    CAPTURE = "capture"


# Steps during which the sampling loop runs
SAMPLING_STEPS = (
    VerificationStep.FACE,
    VerificationStep.BLINK,
    VerificationStep.MOVE,
    VerificationStep.COMPLETE,
)

INSTRUCTIONS = {
    VerificationStep.IDLE: "Click 'Start Face Scan' to begin",
    VerificationStep.FACE: "Position your face in the center of the circle",
    VerificationStep.BLINK: "Please blink your eyes slowly and clearly",
    VerificationStep.MOVE: "Turn your head slightly to the right and then back to center",
    VerificationStep.COMPLETE: "Verification complete! Ready to capture your photo",
    VerificationStep.CAPTURE: "Look at the camera with a neutral expression",
}


@dataclass
class BlinkState:
    blink_count: int = 0
    last_blink_time: float | None = None
    blink_confirmed: bool = False

    def reset(self):
        self.blink_count = 0
        self.last_blink_time = None
        self.blink_confirmed = False


@dataclass
class MovementState:
    movement_score: int = 0
    movement_confirmed: bool = False

    def reset(self):
        self.movement_score = 0
        self.movement_confirmed = False


@dataclass
class VerificationSession:
    step: VerificationStep = VerificationStep.IDLE

    # Detection
    face_box: BBox | None = None
    face_seen: bool = False
    face_lost: bool = False
    frame_size: tuple[int, int] | None = None

    # Histories
    metrics: MetricHistory = field(default_factory=MetricHistory)
    positions: PositionHistory = field(default_factory=PositionHistory)

    # Liveness
    blink: BlinkState = field(default_factory=BlinkState)
    movement: MovementState = field(default_factory=MovementState)

    # Countdown (seconds remaining), None when no countdown is running
    countdown: int | None = None

    # Capture
    captured_image: bytes | None = None
    saved_location: str | None = None

    status_message: str = INSTRUCTIONS[VerificationStep.IDLE]
    error: str | None = None

    @property
    def instruction(self) -> str:
        return INSTRUCTIONS[self.step]

    def reset(self):
        self.step = VerificationStep.IDLE
        self.face_box = None
        self.face_seen = False
        self.face_lost = False
        self.frame_size = None
        self.metrics.clear()
        self.positions.clear()
        self.blink.reset()
        self.movement.reset()
        self.countdown = None
        self.captured_image = None
        self.saved_location = None
        self.status_message = INSTRUCTIONS[VerificationStep.IDLE]
        self.error = None
