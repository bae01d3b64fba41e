import unittest
import numpy as np

from ChessArm.errors import VisionError
from ChessArm.camera_frame import CameraFrame, PinholeIntrinsics, PointCloud
from ChessArm.board_rectifier import (
    BoardRectifier,
    rectify_image,
    rectify_point_cloud,
)

# board seen as the centered 100x100 square of a 200x200 image
CORNERS = np.array([[50, 50], [150, 50], [150, 150], [50, 150]], dtype=np.float64)
INTRINSICS = PinholeIntrinsics(width=200, height=200, fx=100.0, fy=100.0,
                               ppx=100.0, ppy=100.0, distortion=(0.1, 0.0, 0.0, 0.0, 0.0))


def point_at_pixel(u, v, z, intrinsics=INTRINSICS):
    return list(intrinsics.pixel_to_point(u, v, z))


class TestRectifyImage(unittest.TestCase):
    def setUp(self):
        # pixel value = its x coordinate
        self.image = np.tile(np.arange(200, dtype=np.uint8), (200, 1))

    def test_output_size_and_dtype(self):
        out = rectify_image(self.image, CORNERS, size=100)
        self.assertEqual(out.shape, (100, 100))
        self.assertEqual(out.dtype, np.uint8)

    def test_samples_inside_the_board(self):
        out = rectify_image(self.image, CORNERS, size=100)
        self.assertEqual(out[10, 20], 70)
        self.assertEqual(out[99, 0], 50)

    def test_color_image(self):
        color = np.dstack([self.image, self.image, self.image])
        out = rectify_image(color, CORNERS, size=50)
        self.assertEqual(out.shape, (50, 50, 3))
        # scale 2: output x=10 -> source x=70
        self.assertEqual(out[5, 10].tolist(), [70, 70, 70])

    def test_corners_outside_the_image_are_clamped(self):
        corners = [[-50, -50], [250, -50], [250, 250], [-50, 250]]
        out = rectify_image(self.image, corners, size=30)
        self.assertEqual(out[0, 0], 0)
        self.assertEqual(out[0, 29], 199)

    def test_bad_corner_count(self):
        with self.assertRaises(VisionError):
            rectify_image(self.image, CORNERS[:3], size=100)

    def test_missing_image(self):
        with self.assertRaises(VisionError):
            rectify_image(None, CORNERS, size=100)


class TestRectifyPointCloud(unittest.TestCase):
    def setUp(self):
        points = [
            point_at_pixel(100, 100, 500),  # board center
            point_at_pixel(60, 140, 450),   # inside, near bottom-left
            point_at_pixel(20, 20, 500),    # outside the board
            [0.0, 0.0, -10.0],              # behind the camera
        ]
        colors = [[255, 255, 255], [10, 20, 30], [0, 0, 0], [0, 0, 0]]
        self.cloud = PointCloud(points, colors)

    def test_keeps_points_inside_board(self):
        out = rectify_point_cloud(self.cloud, CORNERS, INTRINSICS, size=100)
        self.assertEqual(len(out), 2)
        self.assertEqual(out.colors[1].tolist(), [10, 20, 30])

    def test_depth_unchanged(self):
        out = rectify_point_cloud(self.cloud, CORNERS, INTRINSICS, size=100)
        self.assertEqual(out.points[:, 2].tolist(), [500.0, 450.0])

    def test_projection_matches_rectified_image(self):
        out = rectify_point_cloud(self.cloud, CORNERS, INTRINSICS, size=100)
        virtual = INTRINSICS.rectified(100)
        u, v = virtual.point_to_pixel(*out.points[0])
        self.assertAlmostEqual(u, 50.0, places=6)
        self.assertAlmostEqual(v, 50.0, places=6)
        u, v = virtual.point_to_pixel(*out.points[1])
        self.assertAlmostEqual(u, 10.0, places=6)
        self.assertAlmostEqual(v, 90.0, places=6)

    def test_missing_intrinsics(self):
        with self.assertRaises(VisionError):
            rectify_point_cloud(self.cloud, CORNERS, None, size=100)

    def test_missing_cloud(self):
        with self.assertRaises(VisionError):
            rectify_point_cloud(None, CORNERS, INTRINSICS, size=100)


class TestBoardRectifier(unittest.TestCase):
    def setUp(self):
        self.image = np.zeros((200, 200, 3), dtype=np.uint8)
        self.cloud = PointCloud([point_at_pixel(100, 100, 500)], [[200, 200, 200]])
        self.rectifier = BoardRectifier(lambda image: CORNERS, output_size=80)

    def test_rectify(self):
        frame = CameraFrame(self.image, self.cloud, INTRINSICS)
        out = self.rectifier.rectify(frame)
        self.assertEqual(out.image.shape, (80, 80, 3))
        self.assertEqual(len(out.cloud), 1)
        self.assertEqual((out.intrinsics.width, out.intrinsics.height), (80, 80))
        self.assertEqual((out.intrinsics.ppx, out.intrinsics.ppy), (40.0, 40.0))
        self.assertEqual(out.intrinsics.fx, INTRINSICS.fx)
        self.assertIsNone(out.intrinsics.distortion)

    def test_image_only(self):
        frame = CameraFrame(self.image)
        out = self.rectifier.rectify(frame, with_cloud=False)
        self.assertIsNone(out.cloud)
        self.assertIsNone(out.intrinsics)

    def test_cloud_needs_intrinsics(self):
        with self.assertRaises(VisionError):
            self.rectifier.rectify(CameraFrame(self.image, self.cloud))

    def test_corner_finder_failure(self):
        rectifier = BoardRectifier(lambda image: CORNERS[:2], output_size=80)
        with self.assertRaises(VisionError):
            rectifier.rectify(CameraFrame(self.image))

    def test_no_frame(self):
        with self.assertRaises(VisionError):
            self.rectifier.rectify(None)


if __name__ == '__main__':
    unittest.main()
