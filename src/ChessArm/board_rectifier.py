"""
Board rectification.

Turns the camera view of an angled, possibly cropped board into a square
canonical view. The color image is warped with the inverse homography and
bilinear sampling; the point cloud is filtered to the board polygon and
re-expressed so that projecting it with the rectified (virtual) intrinsics
lands on the same pixels as the warped image. Square segmentation can then
work with plain image-space grid math.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from . import config
from .camera_frame import PointCloud, PinholeIntrinsics
from .errors import VisionError
from .geometry import (solve_homography, apply_homography_array,
                       points_in_polygon, bilinear_sample_array)

logger = logging.getLogger(__name__)


def output_corners(size):
    """Corners of the size x size output, same order as the board corners."""
    return np.array([
        [0, 0],
        [size, 0],
        [size, size],
        [0, size],
    ], dtype=np.float64)


def check_corners(corners):
    corners = np.asarray(corners, dtype=np.float64).reshape(-1, 2)
    if len(corners) != 4:
        raise VisionError(f"expected 4 corners, got {len(corners)}")
    return corners


# ─────────────────────────────────────────────────────────────────────────────
# IMAGE
# ─────────────────────────────────────────────────────────────────────────────

def rectify_image(image, corners, size=config.RECTIFIED_SIZE):
    """
    Warp the board region of image to a size x size top-down view.

    Args:
        image: (H, W, C) or (H, W) source image.
        corners: 4 board corners (top-left, top-right, bottom-right, bottom-left).
        size: side of the output image in pixels.

    Returns:
        (size, size[, C]) image of the same dtype. Every output pixel is
        defined; samples falling outside the source clamp to its border.
    """
    if image is None:
        raise VisionError("no source image to rectify")
    corners = check_corners(corners)

    # output pixel -> source pixel
    H_dst_to_src = solve_homography(output_corners(size), corners)

    ys, xs = np.mgrid[0:size, 0:size].astype(np.float64)
    src_x, src_y = apply_homography_array(H_dst_to_src, xs, ys)
    sampled = bilinear_sample_array(image, src_x, src_y)

    if np.issubdtype(image.dtype, np.integer):
        info = np.iinfo(image.dtype)
        sampled = np.clip(np.rint(sampled), info.min, info.max)
    return sampled.astype(image.dtype)


# ─────────────────────────────────────────────────────────────────────────────
# POINT CLOUD
# ─────────────────────────────────────────────────────────────────────────────

def rectify_point_cloud(cloud, corners, intrinsics, size=config.RECTIFIED_SIZE):
    """
    Keep the points seen inside the board and move them into canonical space.

    Each point is projected with the source intrinsics, dropped if the pixel is
    outside the board quadrilateral, mapped through the forward homography,
    then un-projected with the virtual camera (same fx/fy, principal point at
    the output center) at its original depth. Z is unchanged.

    Args:
        cloud: PointCloud in the source camera frame.
        corners: 4 board corners in source image pixels.
        intrinsics: PinholeIntrinsics of the source camera.
        size: side of the canonical image.

    Returns:
        PointCloud whose projection with intrinsics.rectified(size) matches
        the rectified image.
    """
    if cloud is None:
        raise VisionError("no point cloud to rectify")
    if intrinsics is None:
        raise VisionError("camera does not have intrinsic parameters")
    corners = check_corners(corners)

    H_src_to_dst = solve_homography(corners, output_corners(size))

    pts = cloud.points
    in_front = pts[:, 2] > 0
    img_x, img_y = intrinsics.points_to_pixels(pts)
    keep = in_front & points_in_polygon(np.nan_to_num(img_x), np.nan_to_num(img_y), corners)

    new_x, new_y = apply_homography_array(H_src_to_dst, img_x[keep], img_y[keep])

    z = pts[keep, 2]
    center = size / 2.0
    rectified = np.stack([
        (new_x - center) * z / intrinsics.fx,
        (new_y - center) * z / intrinsics.fy,
        z,
    ], axis=1)

    logger.debug("[VISION] kept %d of %d points inside the board", int(keep.sum()), len(cloud))
    return PointCloud(rectified, cloud.colors[keep], cloud.has_color[keep])


# ─────────────────────────────────────────────────────────────────────────────
# RECTIFIER
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class RectifiedFrame:
    """A capture re-expressed as seen by the virtual top-down camera."""
    image: np.ndarray
    corners: np.ndarray
    intrinsics: Optional[PinholeIntrinsics] = None
    cloud: Optional[PointCloud] = None


class BoardRectifier:
    """Finds the board in a camera frame and rectifies image and cloud."""

    def __init__(self, corner_finder, output_size=config.RECTIFIED_SIZE):
        """
        Args:
            corner_finder: callable image -> 4 ordered corners.
            output_size: side of the canonical image in pixels.
        """
        self.corner_finder = corner_finder
        self.output_size = output_size

    def rectified_intrinsics(self, intrinsics):
        if intrinsics is None:
            return None
        return intrinsics.rectified(self.output_size)

    def rectify(self, frame, with_cloud=True):
        """
        Args:
            frame: CameraFrame from the camera.
            with_cloud: also rectify the point cloud (needs intrinsics).

        Returns:
            RectifiedFrame.
        """
        if frame is None or frame.image is None:
            raise VisionError("no images returned from camera")

        corners = check_corners(self.corner_finder(frame.image))

        cloud = None
        if with_cloud:
            if frame.intrinsics is None:
                raise VisionError("camera does not have intrinsic parameters")
            cloud = rectify_point_cloud(frame.cloud, corners, frame.intrinsics, self.output_size)

        image = rectify_image(frame.image, corners, self.output_size)
        return RectifiedFrame(
            image=image,
            corners=corners,
            intrinsics=self.rectified_intrinsics(frame.intrinsics),
            cloud=cloud,
        )
