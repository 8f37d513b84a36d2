import logging
from typing import Callable

import cv2

from config import (
    TICK_INTERVAL_SECONDS, COUNTDOWN_STEP_SECONDS,
    BLINK_COUNTDOWN, MOVE_COUNTDOWN, CAPTURE_COUNTDOWN,
    DETECTOR_INPUT_SIZE, DETECTOR_SCORE_THRESHOLD,
)
from processing.blink import BlinkDetector
from processing.capture import capture_face_image
from processing.errors import AcquisitionError, CameraUnavailableError, DetectorLoadError, PersistenceError
from processing.face_detection import select_face
from processing.frame_metrics import make_canvas, eye_metrics
from processing.movement import MovementDetector
from processing.regions import eye_regions
from schemas.messages import StatusResponse, BlinkStatus, MovementStatus
from state.session import VerificationSession, VerificationStep, SAMPLING_STEPS

logger = logging.getLogger("uvicorn.error")

CAMERA_ERROR = "Failed to start camera. Please ensure camera permissions are granted."
MODEL_ERROR = "Failed to load face detection models. Please refresh and try again."
FACE_LOST = "Face lost. Please center your face in the frame"


class VerificationMachine:
    """Drives one registration scan: face -> blink -> move -> complete -> capture.

    Automatic detections (from tick()) and manual confirmations feed the same
    guarded transition, so whichever arrives second is a no-op. All timers go
    through the injected scheduler.
    """

    def __init__(
        self,
        camera,
        detector_factory: Callable,
        store,
        scheduler,
        session: VerificationSession | None = None,
        blink_detector: BlinkDetector | None = None,
        movement_detector: MovementDetector | None = None,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        input_size: int = DETECTOR_INPUT_SIZE,
        score_threshold: float = DETECTOR_SCORE_THRESHOLD,
    ):
        self.camera = camera
        self.detector_factory = detector_factory
        self.store = store
        self.scheduler = scheduler
        self.session = session or VerificationSession()
        self.blink_detector = blink_detector or BlinkDetector()
        self.movement_detector = movement_detector or MovementDetector()
        self.tick_interval = tick_interval
        self.input_size = input_size
        self.score_threshold = score_threshold

        self._detector = None
        self._tick_handle = None
        self._countdown_handle = None
        self._ticking = False
        self.tick_count = 0

    # --- Lifecycle ---

    def start(self) -> bool:
        if self.session.step != VerificationStep.IDLE:
            return False
        self.reset()

        try:
            if self._detector is None:
                self._detector = self.detector_factory()
            self.camera.open()
        except DetectorLoadError as e:
            logger.error(f"Scan start failed: {e}")
            self.fail(MODEL_ERROR)
            return False
        except AcquisitionError as e:
            logger.error(f"Scan start failed: {e}")
            self.fail(CAMERA_ERROR)
            return False

        self.session.step = VerificationStep.FACE
        self.session.status_message = "Camera started. Looking for your face..."
        self.tick_count = 0
        self._tick_handle = self.scheduler.call_every(self.tick_interval, self.tick)
        logger.info("Scan started")
        return True

    def reset(self):
        """Back to idle from any state. Safe to call repeatedly."""
        self._stop_sampling()
        self._cancel_countdown()
        self.camera.release()
        self.session.reset()

    def fail(self, message: str):
        """Acquisition failure: end the session and show `message`."""
        self.reset()
        self.session.error = message
        self.session.status_message = message

    def close(self):
        self.reset()
        if self._detector is not None:
            self._detector.close()
            self._detector = None

    # --- Sampling loop ---

    def tick(self):
        """One detection pass. Never raises; a failed pass is skipped."""
        if self.session.step not in SAMPLING_STEPS:
            return
        if self._ticking:
            logger.debug("Previous detection tick still running, skipping")
            return

        self._ticking = True
        try:
            self._process_tick()
        except Exception:
            logger.exception(f"Detection tick failed, step={self.session.step.value}")
        finally:
            self._ticking = False

    def _process_tick(self):
        session = self.session
        frame = self.camera.read()
        if frame is None or self._detector is None:
            return

        faces = self._detector.detect(frame, input_size=self.input_size, score_threshold=self.score_threshold)
        face = select_face(faces)

        self.tick_count += 1
        if self.tick_count <= 3 or self.tick_count % 30 == 0:
            logger.info(f"Tick #{self.tick_count} -> step={session.step.value}, faces={len(faces)}")

        if face is None:
            session.face_box = None
            if session.face_seen:
                session.face_lost = True
                session.status_message = FACE_LOST
            return

        img_h, img_w = frame.shape[:2]
        session.face_box = face
        session.frame_size = (img_w, img_h)
        session.face_seen = True
        if session.face_lost:
            session.face_lost = False
            session.status_message = session.instruction

        self._advance(
            VerificationStep.FACE, VerificationStep.BLINK,
            "Face detected! Please blink your eyes slowly",
            countdown=BLINK_COUNTDOWN,
        )

        canvas = make_canvas(frame)
        canvas_h, canvas_w = canvas.shape[:2]
        left, right = eye_regions(face, (canvas_w, canvas_h), (img_w, img_h))
        session.metrics.push(eye_metrics(canvas, left, right))

        if session.step == VerificationStep.BLINK:
            if self.blink_detector.evaluate(session.metrics, session.blink, self.scheduler.time()):
                logger.info(f"Blink detected (count={session.blink.blink_count})")
                session.blink.blink_confirmed = True
                self._advance(
                    VerificationStep.BLINK, VerificationStep.MOVE,
                    "Blink detected! Please turn your head slightly to the right and back",
                    countdown=MOVE_COUNTDOWN,
                )
        elif session.step == VerificationStep.MOVE:
            if self.movement_detector.evaluate((face.x, face.y), session.positions, session.movement):
                logger.info(f"Movement confirmed (score={session.movement.movement_score})")
                self._advance(
                    VerificationStep.MOVE, VerificationStep.COMPLETE,
                    "Movement detected! Verification complete. Ready to capture your photo.",
                )

    def _stop_sampling(self):
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    # --- Transitions ---

    def _advance(self, from_step: VerificationStep, to_step: VerificationStep, message: str,
                 countdown: int | None = None) -> bool:
        """Move from `from_step` to `to_step`; a no-op once `from_step` has been left."""
        if self.session.step != from_step:
            return False
        self._cancel_countdown()
        self.session.step = to_step
        self.session.status_message = message
        if countdown is not None:
            self._start_countdown(countdown)
        logger.info(f"Step {from_step.value} -> {to_step.value}")
        return True

    def confirm_blink(self) -> bool:
        """Manual fallback, allowed once the blink countdown has run out."""
        if self.session.step != VerificationStep.BLINK or self.session.countdown != 0:
            return False
        self.session.blink.blink_confirmed = True
        return self._advance(
            VerificationStep.BLINK, VerificationStep.MOVE,
            "Blink confirmed! Now please turn your head slightly to the right and back",
            countdown=MOVE_COUNTDOWN,
        )

    def confirm_movement(self) -> bool:
        if self.session.step != VerificationStep.MOVE or self.session.countdown != 0:
            return False
        self.session.movement.movement_confirmed = True
        return self._advance(
            VerificationStep.MOVE, VerificationStep.COMPLETE,
            "Movement confirmed! Verification complete",
        )

    def take_photo(self) -> bool:
        if self.session.step != VerificationStep.COMPLETE:
            return False
        self._stop_sampling()
        return self._advance(
            VerificationStep.COMPLETE, VerificationStep.CAPTURE,
            "Please look at the camera with a neutral expression",
            countdown=CAPTURE_COUNTDOWN,
        )

    # --- Countdown ---

    def _start_countdown(self, seconds: int):
        self.session.countdown = seconds
        handle = None

        def step():
            if handle is None or handle.cancelled:
                return
            self._countdown_step(handle)

        handle = self.scheduler.call_every(COUNTDOWN_STEP_SECONDS, step)
        self._countdown_handle = handle

    def _countdown_step(self, handle):
        session = self.session
        if session.countdown is None:
            handle.cancel()
            return
        session.countdown = max(0, session.countdown - 1)
        if session.countdown > 0:
            return

        handle.cancel()
        if session.step == VerificationStep.BLINK and not session.blink.blink_confirmed:
            session.status_message = "Did you blink? If yes, click 'Confirm Blink'"
        elif session.step == VerificationStep.MOVE and not session.movement.movement_confirmed:
            session.status_message = "Did you move your head? If yes, click 'Confirm Movement'"
        elif session.step == VerificationStep.CAPTURE:
            self.capture()

    def _cancel_countdown(self):
        if self._countdown_handle is not None:
            self._countdown_handle.cancel()
            self._countdown_handle = None
        self.session.countdown = None

    # --- Capture & persistence ---

    def capture(self) -> bool:
        """Take the final photo, crop it around the face and hand it to the store."""
        session = self.session
        if session.step != VerificationStep.CAPTURE or session.captured_image is not None:
            return False

        try:
            frame = self.camera.snapshot()
            image = capture_face_image(frame, session.face_box, session.frame_size)
        except CameraUnavailableError as e:
            logger.error(f"Capture failed: {e}")
            self.fail(CAMERA_ERROR)
            return False
        except (ValueError, cv2.error) as e:
            logger.error(f"Capture failed: {e}")
            self.fail("Failed to capture photo. Please try again.")
            return False

        session.captured_image = image
        self.camera.release()
        logger.info(f"Captured face image ({len(image)} bytes), face_box={session.face_box}")
        return self.save()

    def save(self) -> bool:
        """Persist the captured image. On failure the image is kept for retry_save()."""
        session = self.session
        if session.captured_image is None:
            return False

        session.status_message = "Saving your biometric data..."
        try:
            location = self.store.save(session.captured_image)
        except PersistenceError as e:
            logger.warning(f"Saving capture failed: {e}")
            session.error = str(e) or "Failed to save biometric data"
            session.status_message = "Failed to save biometric data. Please retry."
            return False

        self.reset()
        session.saved_location = location
        session.status_message = "Biometric data saved successfully!"
        return True

    def retry_save(self) -> bool:
        if self.session.step != VerificationStep.CAPTURE or self.session.captured_image is None:
            return False
        self.session.error = None
        return self.save()

    # --- Status ---

    def status(self) -> dict:
        session = self.session
        return StatusResponse(
            step=session.step.value,
            instruction=session.instruction,
            status_message=session.status_message,
            face_detected=session.face_box is not None,
            face_lost=session.face_lost,
            face_box=session.face_box,
            countdown=session.countdown,
            blink=BlinkStatus(
                blink_count=session.blink.blink_count,
                blink_confirmed=session.blink.blink_confirmed,
            ),
            movement=MovementStatus(
                movement_score=session.movement.movement_score,
                movement_confirmed=session.movement.movement_confirmed,
            ),
            has_captured_image=session.captured_image is not None,
            saved_location=session.saved_location,
            error=session.error,
        ).model_dump()
