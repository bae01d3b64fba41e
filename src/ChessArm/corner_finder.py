"""
Board corner finder.

The board carries one concentric-ring marker at each corner. The rings show up
as several nested contours after an adaptive threshold; contours whose
enclosing circles share a center are merged into one marker, and exactly four
markers give the board corners.
"""

import logging

import cv2
import numpy as np

from .errors import VisionError

logger = logging.getLogger(__name__)


class RingMarker:
    """Concentric circles grouped around a common center."""

    def __init__(self, center, radius):
        self.centers = [center]
        self.radii = [radius]
        self.cx, self.cy = center
        self.radius = radius

    def add_circle(self, center, radius):
        self.centers.append(center)
        self.radii.append(radius)
        mx, my = np.mean(self.centers, axis=0)
        self.cx, self.cy = float(mx), float(my)
        self.radius = max(self.radii)

    def nb_circles(self):
        return len(self.centers)

    def center(self):
        return (self.cx, self.cy)


def find_ring_markers(
    img_thresh,
    max_dist_between_centers=3,
    min_radius_circle=4,
    max_radius_circle=35,
    min_radius_marker=7,
    min_circles=3
):
    """
    Group contour enclosing circles into ring markers.

    Args:
        img_thresh: binary image.
        max_dist_between_centers: circles closer than this are one marker (px).
        min_radius_circle, max_radius_circle: accepted circle radii (px).
        min_radius_marker: smallest outer radius of a marker (px).
        min_circles: number of nested contours a marker needs.

    Returns:
        list of RingMarker.
    """
    contours = cv2.findContours(img_thresh, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)[-2]
    circles = []
    for cnt in contours:
        (x, y), r = cv2.minEnclosingCircle(cnt)
        if min_radius_circle < r < max_radius_circle:
            circles.append(((float(x), float(y)), float(r)))

    circles.sort(key=lambda c: c[0][0])
    merged = [False] * len(circles)
    markers = []
    for i, (center, radius) in enumerate(circles):
        if merged[i]:
            continue
        marker = RingMarker(center, radius)
        for k in range(i + 1, len(circles)):
            if merged[k]:
                continue
            other_center, other_radius = circles[k]
            if other_center[0] - marker.cx > max_dist_between_centers:
                break
            if np.hypot(other_center[0] - marker.cx, other_center[1] - marker.cy) <= max_dist_between_centers:
                marker.add_circle(other_center, other_radius)
                merged[k] = True
        if marker.nb_circles() >= min_circles and marker.radius >= min_radius_marker:
            markers.append(marker)
    return markers


def order_corners(points):
    """
    Sort 4 points as top-left, top-right, bottom-right, bottom-left.

    The two smallest y are the top edge, then x decides left and right.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) != 4:
        raise VisionError(f"expected 4 corners, got {len(pts)}")

    by_y = pts[np.argsort(pts[:, 1], kind="stable")]
    top = by_y[:2][np.argsort(by_y[:2, 0], kind="stable")]
    bottom = by_y[2:][np.argsort(by_y[2:, 0], kind="stable")]
    return np.array([top[0], top[1], bottom[1], bottom[0]], dtype=np.float64)


class MarkerCornerFinder:
    """Finds the 4 board corners from the ring markers of a BGR image."""

    def __init__(self, block_size=15, threshold_offset=25, **marker_kwargs):
        self.block_size = block_size
        self.threshold_offset = threshold_offset
        self.marker_kwargs = marker_kwargs

    def find_corners(self, image):
        """
        Returns:
            (4, 2) array ordered top-left, top-right, bottom-right, bottom-left.

        Raises:
            VisionError when anything but 4 markers is visible.
        """
        if image is None:
            raise VisionError("no image to look for the board in")

        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
        img_thresh = cv2.adaptiveThreshold(
            gray, 255,
            cv2.ADAPTIVE_THRESH_MEAN_C,
            cv2.THRESH_BINARY,
            self.block_size, self.threshold_offset
        )
        markers = find_ring_markers(img_thresh, **self.marker_kwargs)
        logger.debug("[VISION] %d ring markers found", len(markers))

        if len(markers) != 4:
            raise VisionError(f"expected 4 corners, got {len(markers)}")
        return order_corners([m.center() for m in markers])

    __call__ = find_corners
