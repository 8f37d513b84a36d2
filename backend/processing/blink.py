from collections.abc import Sequence

from config import (
    BLINK_MIN_SAMPLES, BLINK_BRIGHTNESS_VARIANCE, BLINK_EDGE_VARIANCE,
    BLINK_BRIGHTNESS_DERIVATIVE, BLINK_PATTERN_DROP, BLINK_PATTERN_RISE,
    BLINK_DEBOUNCE_SECONDS,
)
from processing.history import MetricHistory, variance, derivative
from state.session import BlinkState


def drop_then_rise(values: Sequence[float], drop: float = BLINK_PATTERN_DROP, rise: float = BLINK_PATTERN_RISE) -> bool:
    """Eyelid closing dims the region, reopening brightens it again.

    Compares the samples five, three and one frames back.
    """
    if len(values) < 5:
        return False
    before, during, after = values[-5], values[-3], values[-1]
    return during < drop * before and after > rise * during


class BlinkDetector:
    """Heuristic blink detector over the eye-region metric history.

    Any one of four signals counts as a blink: brightness variance, edge-density
    variance, a sharp brightness change between the last two frames, or a
    drop-then-rise shape in brightness or edge density. Accepted blinks are
    debounced.
    """

    def __init__(
        self,
        brightness_variance: float = BLINK_BRIGHTNESS_VARIANCE,
        edge_variance: float = BLINK_EDGE_VARIANCE,
        brightness_derivative: float = BLINK_BRIGHTNESS_DERIVATIVE,
        min_samples: int = BLINK_MIN_SAMPLES,
        debounce_seconds: float = BLINK_DEBOUNCE_SECONDS,
    ):
        self.brightness_variance = brightness_variance
        self.edge_variance = edge_variance
        self.brightness_derivative = brightness_derivative
        self.min_samples = min_samples
        self.debounce_seconds = debounce_seconds

    def signals(self, history: MetricHistory) -> dict[str, bool]:
        brightness = list(history.brightness)
        edges = list(history.edge_density)
        return {
            "brightness_variance": variance(brightness) > self.brightness_variance,
            "edge_variance": variance(edges) > self.edge_variance,
            "brightness_derivative": abs(derivative(brightness)) > self.brightness_derivative,
            "pattern": drop_then_rise(brightness) or drop_then_rise(edges),
        }

    def evaluate(self, history: MetricHistory, state: BlinkState, now: float) -> bool:
        """True when a new blink is accepted at time `now` (seconds)."""
        if len(history) < self.min_samples:
            return False

        if not any(self.signals(history).values()):
            return False

        if state.last_blink_time is not None and now - state.last_blink_time <= self.debounce_seconds:
            return False

        state.blink_count += 1
        state.last_blink_time = now
        return True
