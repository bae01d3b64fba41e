"""
What one capture of the RGB-D camera looks like once it reaches the arm:
a BGR color image, a colored point cloud and the pinhole intrinsics that tie
the two together.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class PinholeIntrinsics:
    """Pinhole projection parameters of a camera (pixels)."""
    width: int
    height: int
    fx: float
    fy: float
    ppx: float
    ppy: float
    distortion: Optional[Tuple[float, ...]] = None

    def point_to_pixel(self, x, y, z):
        """Project a camera-frame 3D point to image coordinates."""
        return self.fx * x / z + self.ppx, self.fy * y / z + self.ppy

    def points_to_pixels(self, points):
        """Vectorized point_to_pixel over an (N, 3) array."""
        z = points[:, 2]
        with np.errstate(divide="ignore", invalid="ignore"):
            u = self.fx * points[:, 0] / z + self.ppx
            v = self.fy * points[:, 1] / z + self.ppy
        return u, v

    def pixel_to_point(self, u, v, z):
        """Back-project an image coordinate at depth z."""
        return (u - self.ppx) * z / self.fx, (v - self.ppy) * z / self.fy, z

    def rectified(self, size):
        """
        Intrinsics of the virtual camera looking straight down at the square
        board image: same focal lengths, principal point at the center of the
        size x size output and no distortion (corrected upstream).
        """
        return replace(self, width=size, height=size,
                       ppx=size / 2.0, ppy=size / 2.0, distortion=None)


class PointCloud:
    """
    A set of 3D points with optional RGB colors.

    points is (N, 3) float64. colors is (N, 3) uint8 in RGB order or None;
    has_color flags which points carry a color.
    """

    def __init__(self, points=None, colors=None, has_color=None):
        if points is None:
            points = np.zeros((0, 3), dtype=np.float64)
        self.points = np.asarray(points, dtype=np.float64).reshape(-1, 3)

        if colors is None:
            self.colors = np.zeros((len(self.points), 3), dtype=np.uint8)
            self.has_color = np.zeros(len(self.points), dtype=bool)
        else:
            self.colors = np.asarray(colors, dtype=np.uint8).reshape(-1, 3)
            if has_color is None:
                has_color = np.ones(len(self.points), dtype=bool)
            self.has_color = np.asarray(has_color, dtype=bool).reshape(-1)

        if len(self.colors) != len(self.points) or len(self.has_color) != len(self.points):
            raise ValueError("points, colors and has_color must have the same length")

    def __len__(self):
        return len(self.points)

    @property
    def is_empty(self):
        return len(self.points) == 0

    @property
    def max_z(self):
        return float(self.points[:, 2].max()) if len(self) else 0.0

    def subset(self, mask):
        return PointCloud(self.points[mask], self.colors[mask], self.has_color[mask])

    def center(self):
        """Centroid of the cloud."""
        if self.is_empty:
            return np.zeros(3)
        return self.points.mean(axis=0)

    def highest(self):
        """Point with the largest Z."""
        if self.is_empty:
            return np.zeros(3)
        return self.points[int(np.argmax(self.points[:, 2]))]

    def lowest(self):
        """Point with the smallest Z."""
        if self.is_empty:
            return np.zeros(3)
        return self.points[int(np.argmin(self.points[:, 2]))]

    def transformed(self, matrix):
        """Apply a 4x4 rigid transform to every point."""
        matrix = np.asarray(matrix, dtype=np.float64)
        pts = self.points @ matrix[:3, :3].T + matrix[:3, 3]
        return PointCloud(pts, self.colors.copy(), self.has_color.copy())

    @classmethod
    def from_depth_image(cls, depth, intrinsics, color=None, depth_scale=1.0):
        """
        Build a cloud from a depth image aligned with the color image.

        Args:
            depth: (H, W) depth image, 0 means no reading.
            intrinsics: PinholeIntrinsics of the depth image.
            color: optional (H, W, 3) BGR image aligned with depth.
            depth_scale: multiplier turning depth values into cloud units.

        Returns:
            PointCloud in the camera frame.
        """
        depth = np.asarray(depth, dtype=np.float64) * depth_scale
        h, w = depth.shape
        v, u = np.mgrid[0:h, 0:w]
        valid = depth > 0

        z = depth[valid]
        x = (u[valid] - intrinsics.ppx) * z / intrinsics.fx
        y = (v[valid] - intrinsics.ppy) * z / intrinsics.fy
        points = np.stack([x, y, z], axis=1)

        if color is None:
            return cls(points)
        rgb = np.asarray(color)[valid][:, ::-1]
        return cls(points, rgb)


@dataclass
class CameraFrame:
    """One capture: BGR image, optional cloud and intrinsics."""
    image: np.ndarray
    cloud: Optional[PointCloud] = None
    intrinsics: Optional[PinholeIntrinsics] = None
