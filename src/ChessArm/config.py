"""
Default settings for the chess arm.

All distances are in millimeters in the world (robot base) frame, heights
are world Z. Every value here can be overridden through the keyword
arguments of the class that uses it.
"""

# ─────────────────────────────────────────────────────────────────────────────
# VISION
# ─────────────────────────────────────────────────────────────────────────────

RECTIFIED_SIZE = 800            # side of the square canonical image (px)
GRID_SIZE = 8                   # squares per side

PIECE_HEIGHT_THRESHOLD = 20.0   # depth band under the highest point (mm)
MIN_COLORED_POINTS = 10         # fewer colored points -> empty square
BRIGHTNESS_SPLIT = 128.0        # average RGB above -> white piece

COLOR_EMPTY = 0
COLOR_WHITE = 1
COLOR_BLACK = 2
COLOR_NAMES = ["", "W", "B"]

LOW_POINT_BOX = 5               # half side of the "x-" alignment detection (px)

# ─────────────────────────────────────────────────────────────────────────────
# ARM / GRIPPER
# ─────────────────────────────────────────────────────────────────────────────

SAFE_Z = 200.0                  # travel height, above every piece
GRAB_STEP = 10.0                # extra descent after a missed grab
GRAB_FLOOR_Z = 12.0             # never go lower than this
GRAB_SETTLE_S = 0.3             # wait before reading the grip sensor
GRAB_RETRY_S = 0.25             # wait after re-opening for another try
GRIP_CONFIDENCE_MIN = 20.0      # sensor value under which a "grab" is a miss

# far targets get a small tilt to keep the wrist away from its joint limits
TILT_X_LIMIT = 300.0
TILT_Y_LIMIT = -300.0

# ─────────────────────────────────────────────────────────────────────────────
# GRAVEYARD
# ─────────────────────────────────────────────────────────────────────────────

GRAVEYARD_SPACING = 80.0        # distance between graveyard columns (mm)
GRAVEYARD_Z = 60.0
HOLDING_POSITION = (400.0, -400.0, 200.0)

# ─────────────────────────────────────────────────────────────────────────────
# ENGINE / STATE
# ─────────────────────────────────────────────────────────────────────────────

ENGINE_PATH = "stockfish"
ENGINE_MILLIS = 10
DEFAULT_SKILL = 50.0

STATE_DIR_ENV = "CHESS_ARM_DATA"
STATE_FILE_NAME = "state.json"

CENTER_PROBE_SQUARES = ("d1", "e1", "d8", "e8")
