#!/usr/bin/env python3
'''
    This code allows the player to play against the Niryo Ned2 for a chess game
    It uses an RGB-D camera to find the board and the color of the pieces on it
    It uses Stockfish for the robot's next move decision
    The game is saved after every move, so the script can be stopped and restarted

    I. First part provides modules imports
    II. Second part provides robot and camera configuration
    III. Third part provides helper functions (camera capture)
    IV. Fourth part describes the main
'''


# ─────────────────────────────────────────────────────────────────────────────
# I. IMPORTS
# ─────────────────────────────────────────────────────────────────────────────

# Standard modules import
import logging
import numpy as np
import cv2

# Chess arm package
from ChessArm import (
    CameraFrame,
    PinholeIntrinsics,
    PointCloud,
    MarkerCornerFinder,
    PieceFinder,
    GameStateStore,
    EnginePlayer,
    ChessSession,
    ChessArmError,
    BoardConsistencyError,
    GameOverError,
    PlayCommand,
)
from ChessArm.niryo_arm import NiryoActuator, NiryoFrameTransform, connect

# ─────────────────────────────────────────────────────────────────────────────
# II. ROBOT CONFIG
# ─────────────────────────────────────────────────────────────────────────────

ROBOT_IP = '169.254.200.200' # Direct Ethernet
GRIP_SENSOR_PIN = 'AI1'
STOCKFISH_PATH = "stockfish"
SKILL = 50

# RGB-D camera opened through OpenCV's OpenNI2 backend
CAMERA_ID = cv2.CAP_OPENNI2
DEPTH_SCALE = 1.0          # OpenNI depth maps are already in mm
CAMERA_INTRINSICS = PinholeIntrinsics(
    width=640, height=480,
    fx=570.3, fy=570.3,
    ppx=319.5, ppy=239.5,
)

# Hand-eye calibration: camera frame (mm) -> robot base frame (mm)
# camera mounted above the board, looking down
CAMERA_TO_WORLD = np.array([
    [0.0, -1.0,  0.0, 300.0],
    [-1.0, 0.0,  0.0,   0.0],
    [0.0,  0.0, -1.0, 650.0],
    [0.0,  0.0,  0.0,   1.0],
], dtype=np.float64)

DEBUG_IMAGE = "board_debug.png"

# ─────────────────────────────────────────────────────────────────────────────
# III. CAMERA FUNCTIONS
# ─────────────────────────────────────────────────────────────────────────────

def initialize_camera():
    """Initialise la capture RGB-D."""
    cap = cv2.VideoCapture(CAMERA_ID)
    if not cap.isOpened():
        raise RuntimeError(f"Can't open the RGB-D camera ({CAMERA_ID}). Check the USB connection.")
    return cap


def make_capture_fn(cap):
    """
    Returns:
        callable giving one CameraFrame (color image + colored cloud), or None
        when the camera did not return both images.
    """
    def capture():
        if not cap.grab():
            print("[ERROR] Impossible de capturer.")
            return None
        ok_depth, depth = cap.retrieve(None, cv2.CAP_OPENNI_DEPTH_MAP)
        ok_color, image = cap.retrieve(None, cv2.CAP_OPENNI_BGR_IMAGE)
        if not ok_depth or not ok_color:
            print("[ERROR] Missing depth or color image.")
            return None

        cloud = PointCloud.from_depth_image(depth, CAMERA_INTRINSICS, image, DEPTH_SCALE)
        return CameraFrame(image=image, cloud=cloud, intrinsics=CAMERA_INTRINSICS)

    return capture

# ─────────────────────────────────────────────────────────────────────────────
# IV. MAIN
# ─────────────────────────────────────────────────────────────────────────────

def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    # Robot initialisation
    robot = connect(ROBOT_IP)
    actuator = NiryoActuator(robot, GRIP_SENSOR_PIN)
    frame_transform = NiryoFrameTransform(actuator, CAMERA_TO_WORLD)

    capture = initialize_camera()
    piece_finder = PieceFinder(make_capture_fn(capture), frame_transform, MarkerCornerFinder())

    # AI model loading
    engine_player = EnginePlayer.open(STOCKFISH_PATH, skill=SKILL)
    print("✓ Stockfish loaded")

    store = GameStateStore()
    session = ChessSession(piece_finder, actuator, frame_transform, store, engine_player,
                           debug_path=DEBUG_IMAGE)
    print(f"[PROCESSING] Game saved in {store.path}")

    try:
        # Game loop
        while not store.load().board.is_game_over():
            input("→ Play your move and press Enter…")
            try:
                result = session.execute(PlayCommand(1))
                print(f"[ROBOT] played {result['move']}")
            except BoardConsistencyError as e:
                print(f"[ERROR] {e}: check squares {', '.join(e.squares)} and try again")
            except GameOverError as e:
                print(f"[GAME] {e}")
            except ChessArmError as e:
                print(f"[ERROR] {e}")

        # Game ends
        print(f"### Result : {store.load().board.result()} ###")
    finally:
        engine_player.close()
        capture.release()
        robot.close_connection()


if __name__ == "__main__":
    main()
