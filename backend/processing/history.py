from collections import deque
from collections.abc import Sequence

import numpy as np

from config import MAX_HISTORY, MAX_POSITION_HISTORY
from processing.frame_metrics import FrameMetrics


def variance(values: Sequence[float]) -> float:
    """Population variance; 0.0 for an empty window."""
    if len(values) == 0:
        return 0.0
    return float(np.var(np.asarray(values, dtype=np.float64)))


def derivative(values: Sequence[float]) -> float:
    """Last minus second-to-last sample; 0.0 with fewer than two."""
    if len(values) < 2:
        return 0.0
    return float(values[-1] - values[-2])


class MetricHistory:
    """Rolling per-frame metric windows, evicted in lockstep (oldest first)."""

    def __init__(self, capacity: int = MAX_HISTORY):
        self.capacity = capacity
        self.brightness: deque[float] = deque(maxlen=capacity)
        self.edge_density: deque[float] = deque(maxlen=capacity)
        self.contrast: deque[float] = deque(maxlen=capacity)

    def push(self, metrics: FrameMetrics):
        self.brightness.append(metrics.brightness)
        self.edge_density.append(metrics.edge_density)
        self.contrast.append(metrics.contrast)

    def clear(self):
        self.brightness.clear()
        self.edge_density.clear()
        self.contrast.clear()

    def __len__(self) -> int:
        return len(self.brightness)


class PositionHistory:
    """Rolling window of face positions (x, y)."""

    def __init__(self, capacity: int = MAX_POSITION_HISTORY):
        self.capacity = capacity
        self.positions: deque[tuple[float, float]] = deque(maxlen=capacity)

    def push(self, position: tuple[float, float]):
        self.positions.append((float(position[0]), float(position[1])))

    def clear(self):
        self.positions.clear()

    def __len__(self) -> int:
        return len(self.positions)

    def __iter__(self):
        return iter(self.positions)

    def __getitem__(self, index):
        return self.positions[index]
