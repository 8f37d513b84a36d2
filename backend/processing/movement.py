import math

from config import (
    MOVEMENT_MIN_SAMPLES, MOVEMENT_TOTAL_THRESHOLD, MOVEMENT_DISPLACEMENT_THRESHOLD,
    MOVEMENT_DIRECTION_CHANGES, MOVEMENT_SCORE_REQUIRED,
)
from processing.history import PositionHistory
from state.session import MovementState


def total_movement(positions) -> float:
    """Path length across the window."""
    pts = list(positions)
    return sum(math.dist(a, b) for a, b in zip(pts, pts[1:]))


def max_displacement(positions) -> float:
    """Furthest any sample gets from the first one in the window."""
    pts = list(positions)
    if len(pts) < 2:
        return 0.0
    origin = pts[0]
    return max(math.dist(origin, p) for p in pts[1:])


def _sign_changes(deltas) -> int:
    changes = 0
    last = 0
    for d in deltas:
        if d == 0:
            continue
        direction = 1 if d > 0 else -1
        if last and direction != last:
            changes += 1
        last = direction
    return changes


def direction_changes(positions) -> int:
    """Reversals along x plus reversals along y. Still frames are skipped."""
    pts = list(positions)
    dx = [b[0] - a[0] for a, b in zip(pts, pts[1:])]
    dy = [b[1] - a[1] for a, b in zip(pts, pts[1:])]
    return _sign_changes(dx) + _sign_changes(dy)


class MovementDetector:
    """Decides the head moved deliberately, corroborated over several ticks."""

    def __init__(
        self,
        total_threshold: float = MOVEMENT_TOTAL_THRESHOLD,
        displacement_threshold: float = MOVEMENT_DISPLACEMENT_THRESHOLD,
        min_direction_changes: int = MOVEMENT_DIRECTION_CHANGES,
        score_required: int = MOVEMENT_SCORE_REQUIRED,
        min_samples: int = MOVEMENT_MIN_SAMPLES,
    ):
        self.total_threshold = total_threshold
        self.displacement_threshold = displacement_threshold
        self.min_direction_changes = min_direction_changes
        self.score_required = score_required
        self.min_samples = min_samples

    def signals(self, history: PositionHistory) -> dict[str, bool]:
        return {
            "total_movement": total_movement(history) > self.total_threshold,
            "max_displacement": max_displacement(history) > self.displacement_threshold,
            "direction_changes": direction_changes(history) >= self.min_direction_changes,
        }

    def evaluate(self, position: tuple[float, float], history: PositionHistory, state: MovementState) -> bool:
        """Push `position` and return True once movement is confirmed."""
        if state.movement_confirmed:
            return True

        history.push(position)
        if len(history) < self.min_samples:
            return False

        if any(self.signals(history).values()):
            state.movement_score += 1

        if state.movement_score >= self.score_required:
            state.movement_confirmed = True
            return True
        return False
