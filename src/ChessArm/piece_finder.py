"""
Square segmentation and piece color classification.

Works on the rectified frame: the canonical image is cut into an 8x8 grid,
each square keeps the points of the cloud that project inside it, and the
colored points standing above the board decide empty / white / black.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import cv2
import numpy as np

from . import config
from .board_rectifier import BoardRectifier
from .camera_frame import PointCloud
from .errors import VisionError

logger = logging.getLogger(__name__)

FILES = "abcdefgh"


# ─────────────────────────────────────────────────────────────────────────────
# CLASSIFICATION
# ─────────────────────────────────────────────────────────────────────────────

def estimate_piece_color(
    cloud,
    height_threshold=config.PIECE_HEIGHT_THRESHOLD,
    min_points=config.MIN_COLORED_POINTS,
    brightness_split=config.BRIGHTNESS_SPLIT
):
    """
    Classify the content of one square.

    Only colored points with Z under (max Z - height_threshold) count. With
    fewer than min_points of them the square is empty, otherwise the average
    brightness of their colors decides white (above brightness_split) or
    black.

    Returns:
        config.COLOR_EMPTY, config.COLOR_WHITE or config.COLOR_BLACK.
    """
    if cloud is None or cloud.is_empty:
        return config.COLOR_EMPTY

    min_z = cloud.max_z - height_threshold
    mask = (cloud.points[:, 2] < min_z) & cloud.has_color
    count = int(mask.sum())
    if count < min_points:
        return config.COLOR_EMPTY

    avg_r, avg_g, avg_b = cloud.colors[mask].astype(np.float64).mean(axis=0)
    brightness = (avg_r + avg_g + avg_b) / 3.0
    if brightness > brightness_split:
        return config.COLOR_WHITE
    return config.COLOR_BLACK


def limit_to_image_box(cloud, box, intrinsics):
    """Points of cloud whose projection falls in box = (x1, y1, x2, y2)."""
    if cloud is None or cloud.is_empty:
        return PointCloud()
    x1, y1, x2, y2 = box
    u, v = intrinsics.points_to_pixels(cloud.points)
    mask = (cloud.points[:, 2] > 0) & (u >= x1) & (u < x2) & (v >= y1) & (v < y2)
    return cloud.subset(mask)


# ─────────────────────────────────────────────────────────────────────────────
# SEGMENTATION
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class SquareInfo:
    """One of the 64 squares of a rectified frame."""
    rank: int
    file: str
    name: str
    bounds: Tuple[int, int, int, int]
    color: int
    cloud: PointCloud


def square_bounds(width, height, rank, file):
    """
    Image rectangle of a square in the canonical view.

    The arm sees the board from the white side turned sideways: file h is on
    the left edge, rank 1 on the top edge. A wider than tall image is
    centered horizontally.
    """
    square_size = height // config.GRID_SIZE
    x_offset = (width - height) // 2
    x = (FILES.index("h") - FILES.index(file)) * square_size + x_offset
    y = (rank - 1) * square_size
    return (x, y, x + square_size, y + square_size)


def segment_squares(
    width,
    height,
    cloud,
    intrinsics,
    height_threshold=config.PIECE_HEIGHT_THRESHOLD,
    min_points=config.MIN_COLORED_POINTS,
    brightness_split=config.BRIGHTNESS_SPLIT
):
    """
    Split the canonical cloud into the 64 squares and classify each.

    Returns:
        list of SquareInfo ordered a1, b1, ... h1, a2, ... h8.
    """
    squares = []
    for rank in range(1, config.GRID_SIZE + 1):
        for file in FILES:
            bounds = square_bounds(width, height, rank, file)
            sub_cloud = limit_to_image_box(cloud, bounds, intrinsics)
            color = estimate_piece_color(sub_cloud, height_threshold, min_points, brightness_split)
            squares.append(SquareInfo(rank, file, f"{file}{rank}", bounds, color, sub_cloud))
    return squares


def square_label(name, color):
    return f"{name}-{color}"


# ─────────────────────────────────────────────────────────────────────────────
# CAPTURE
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Detection:
    label: str
    bounds: Tuple[int, int, int, int]


@dataclass
class SquareObject:
    """A square of the capture with its cloud in the world frame."""
    name: str
    label: str
    color: int
    cloud: PointCloud
    bounds: Tuple[int, int, int, int]

    @property
    def is_empty(self):
        return self.color == config.COLOR_EMPTY


@dataclass
class BoardCapture:
    """Result of one vision pass, only valid for one decision cycle."""
    image: np.ndarray
    objects: List[SquareObject] = field(default_factory=list)
    detections: List[Detection] = field(default_factory=list)

    def find_object(self, prefix) -> Optional[SquareObject]:
        for o in self.objects:
            if o.label.startswith(prefix):
                return o
        return None

    def find_detection(self, prefix) -> Optional[Detection]:
        for d in self.detections:
            if d.label.startswith(prefix):
                return d
        return None

    def occupancy(self):
        """{square name: color code} for the 64 squares."""
        return {o.name: o.color for o in self.objects}


def draw_debug(image, squares):
    """Canonical image with the grid and "<square>-<W|B|>" in each square."""
    vis = image.copy()
    for sq in squares:
        x1, y1, x2, y2 = sq.bounds
        cv2.rectangle(vis, (x1, y1), (x2, y2), (0, 0, 0), 1)
        text = f"{sq.name}-{config.COLOR_NAMES[sq.color]}"
        cx = (x1 + x2) // 2 - len(text) * 3
        cy = (y1 + y2) // 2 + 3
        cv2.putText(vis, text, (cx, cy), cv2.FONT_HERSHEY_SIMPLEX, 0.4, (0, 0, 255), 1)
    return vis


class PieceFinder:
    """
    One full vision pass: camera -> rectified frame -> 64 classified squares
    with their clouds in the world frame.
    """

    def __init__(
        self,
        capture_fn,
        frame_transform,
        corner_finder,
        output_size=config.RECTIFIED_SIZE,
        height_threshold=config.PIECE_HEIGHT_THRESHOLD,
        min_points=config.MIN_COLORED_POINTS,
        brightness_split=config.BRIGHTNESS_SPLIT
    ):
        """
        Args:
            capture_fn: callable returning a CameraFrame (or None on failure).
            frame_transform: maps camera clouds into the world frame.
            corner_finder: callable image -> 4 ordered board corners.
            output_size: side of the canonical image.
            height_threshold, min_points, brightness_split: classifier tuning.
        """
        self.capture_fn = capture_fn
        self.frame_transform = frame_transform
        self.rectifier = BoardRectifier(corner_finder, output_size)
        self.height_threshold = height_threshold
        self.min_points = min_points
        self.brightness_split = brightness_split

    def capture_all(self, debug_path=None) -> BoardCapture:
        frame = self.capture_fn()
        if frame is None:
            raise VisionError("no images returned from camera")

        rectified = self.rectifier.rectify(frame, with_cloud=True)
        height, width = rectified.image.shape[:2]
        squares = segment_squares(
            width, height, rectified.cloud, rectified.intrinsics,
            self.height_threshold, self.min_points, self.brightness_split
        )

        if debug_path is not None:
            if not cv2.imwrite(str(debug_path), draw_debug(rectified.image, squares)):
                logger.warning("[VISION] writing %s failed", debug_path)

        capture = BoardCapture(image=rectified.image)
        for sq in squares:
            label = square_label(sq.name, sq.color)
            world = self.frame_transform.transform_point_cloud(sq.cloud)
            capture.objects.append(SquareObject(sq.name, label, sq.color, world, sq.bounds))
            capture.detections.append(Detection(label, sq.bounds))
            capture.detections.append(Detection("x-" + label, self._low_point_box(sq, rectified.intrinsics)))
        return capture

    def _low_point_box(self, sq, intrinsics):
        """Small box around the projection of the square's lowest point."""
        half = config.LOW_POINT_BOX
        if sq.cloud.is_empty:
            x1, y1, x2, y2 = sq.bounds
            low_x, low_y = (x1 + x2) / 2.0, (y1 + y2) / 2.0
        else:
            low = sq.cloud.lowest()
            low_x, low_y = intrinsics.point_to_pixel(*low)
            logger.debug("[VISION] %s low point %s at (%.2f, %.2f)", sq.name, low, low_x, low_y)
        return (int(low_x - half), int(low_y - half), int(low_x + half), int(low_y + half))
