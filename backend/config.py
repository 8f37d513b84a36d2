import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")
load_dotenv(Path(__file__).resolve().parent / ".env")

BASE_DIR = Path(__file__).resolve().parent

# Weights / model paths
WEIGHTS_DIR = BASE_DIR / os.getenv("WEIGHTS_DIR", "weights")
FACE_DETECTOR_PATH = BASE_DIR / os.getenv("FACE_DETECTOR_PATH", "weights/blaze_face_short_range.tflite")

# Face detector call parameters
DETECTOR_INPUT_SIZE = int(os.getenv("DETECTOR_INPUT_SIZE", "224"))
DETECTOR_SCORE_THRESHOLD = float(os.getenv("DETECTOR_SCORE_THRESHOLD", "0.5"))

# Analysis canvas (downscaled copy of the source frame)
CANVAS_SCALE = float(os.getenv("CANVAS_SCALE", "0.5"))

# Eye regions, as fractions of the face box
EYE_TOP_FRACTION = 0.25
EYE_HEIGHT_FRACTION = 0.20
EYE_WIDTH_FRACTION = 0.30
LEFT_EYE_X_FRACTION = 0.15
RIGHT_EYE_X_FRACTION = 0.55

# Frame metrics
EDGE_THRESHOLD = float(os.getenv("EDGE_THRESHOLD", "20"))

# History windows
MAX_HISTORY = 15
MAX_POSITION_HISTORY = 10

# Blink detection
BLINK_MIN_SAMPLES = 5
BLINK_BRIGHTNESS_VARIANCE = float(os.getenv("BLINK_BRIGHTNESS_VARIANCE", "0.0008"))
BLINK_EDGE_VARIANCE = float(os.getenv("BLINK_EDGE_VARIANCE", "0.01"))
BLINK_BRIGHTNESS_DERIVATIVE = float(os.getenv("BLINK_BRIGHTNESS_DERIVATIVE", "0.02"))
BLINK_PATTERN_DROP = 0.9
BLINK_PATTERN_RISE = 1.05
BLINK_DEBOUNCE_SECONDS = float(os.getenv("BLINK_DEBOUNCE_SECONDS", "1.0"))

# Movement detection
MOVEMENT_MIN_SAMPLES = 3
MOVEMENT_TOTAL_THRESHOLD = float(os.getenv("MOVEMENT_TOTAL_THRESHOLD", "15"))
MOVEMENT_DISPLACEMENT_THRESHOLD = float(os.getenv("MOVEMENT_DISPLACEMENT_THRESHOLD", "10"))
MOVEMENT_DIRECTION_CHANGES = int(os.getenv("MOVEMENT_DIRECTION_CHANGES", "1"))
MOVEMENT_SCORE_REQUIRED = int(os.getenv("MOVEMENT_SCORE_REQUIRED", "3"))

# Verification timing
TICK_INTERVAL_SECONDS = float(os.getenv("TICK_INTERVAL_SECONDS", "0.1"))
COUNTDOWN_STEP_SECONDS = 1.0
BLINK_COUNTDOWN = int(os.getenv("BLINK_COUNTDOWN", "5"))
MOVE_COUNTDOWN = int(os.getenv("MOVE_COUNTDOWN", "5"))
CAPTURE_COUNTDOWN = int(os.getenv("CAPTURE_COUNTDOWN", "3"))

# Capture & crop
CROP_PADDING = int(os.getenv("CROP_PADDING", "50"))
JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "90"))
CAPTURE_DIR = BASE_DIR / os.getenv("CAPTURE_DIR", "captures")

# Server
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
