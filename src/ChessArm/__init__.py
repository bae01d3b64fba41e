from .errors import (ChessArmError, VisionError, GeometryError,
                     SingularHomographyError, DegenerateProjectionError,
                     BoardConsistencyError, UnsupportedMoveError, GameOverError, StateError,
                     CommandError, ActuationError, GrabError, OperationCancelled)
from .camera_frame import PinholeIntrinsics, PointCloud, CameraFrame
from .geometry import (solve_homography, apply_homography,
                       point_in_polygon, bilinear_sample)
from .corner_finder import MarkerCornerFinder, order_corners
from .board_rectifier import BoardRectifier, RectifiedFrame, rectify_image, rectify_point_cloud
from .frames import RigidFrameTransform
from .piece_finder import (PieceFinder, BoardCapture, SquareInfo,
                           estimate_piece_color, segment_squares)
from .board_differ import find_board_differences, infer_move
from .game_state import GameState, GameStateStore, default_state_path
from .reset_planner import ResetPlanner
from .chess_engine import EnginePlayer
from .move_executor import MoveExecutor, ExecutorState, Waypoint, graveyard_position, center_for
from .commands import (MoveCommand, PlayCommand, ResetCommand, WipeCommand,
                       CenterCommand, SkillCommand, decode_command)
from .chess_session import ChessSession

__all__ = ["ChessArmError", "VisionError", "GeometryError",
           "SingularHomographyError", "DegenerateProjectionError",
           "BoardConsistencyError", "UnsupportedMoveError", "GameOverError", "StateError",
           "CommandError", "ActuationError", "GrabError", "OperationCancelled",
           "PinholeIntrinsics", "PointCloud", "CameraFrame",
           "solve_homography", "apply_homography",
           "point_in_polygon", "bilinear_sample",
           "MarkerCornerFinder", "order_corners",
           "BoardRectifier", "RectifiedFrame", "rectify_image", "rectify_point_cloud",
           "RigidFrameTransform",
           "PieceFinder", "BoardCapture", "SquareInfo",
           "estimate_piece_color", "segment_squares",
           "find_board_differences", "infer_move",
           "GameState", "GameStateStore", "default_state_path",
           "ResetPlanner",
           "EnginePlayer",
           "MoveExecutor", "ExecutorState", "Waypoint", "graveyard_position", "center_for",
           "MoveCommand", "PlayCommand", "ResetCommand", "WipeCommand",
           "CenterCommand", "SkillCommand", "decode_command",
           "ChessSession"]
