import os
import tempfile
import unittest
import numpy as np

from ChessArm import config
from ChessArm.errors import VisionError
from ChessArm.camera_frame import CameraFrame, PinholeIntrinsics, PointCloud
from ChessArm.frames import RigidFrameTransform
from ChessArm.piece_finder import (
    PieceFinder,
    estimate_piece_color,
    square_bounds,
    segment_squares,
    FILES,
)

SIZE = 80
INTRINSICS = PinholeIntrinsics(width=SIZE, height=SIZE, fx=80.0, fy=80.0, ppx=40.0, ppy=40.0)
BOARD_CORNERS = np.array([[0, 0], [SIZE, 0], [SIZE, SIZE], [0, SIZE]], dtype=np.float64)

WHITE = (230, 230, 230)
BLACK = (20, 20, 20)
BOARD_Z = 500.0
PIECE_Z = 450.0


def synthetic_cloud(pieces):
    """
    Camera looking down at the board: board points at BOARD_Z in every
    square, 12 points at PIECE_Z (closer to the camera) on occupied squares.

    Args:
        pieces: {square name: RGB color}
    """
    points, colors = [], []
    for rank in range(1, 9):
        for file in FILES:
            x1, y1, _, _ = square_bounds(SIZE, SIZE, rank, file)
            for du, dv in [(2.5, 2.5), (7.5, 2.5), (2.5, 7.5), (7.5, 7.5)]:
                points.append(INTRINSICS.pixel_to_point(x1 + du, y1 + dv, BOARD_Z))
                colors.append((128, 128, 128))
            color = pieces.get(f"{file}{rank}")
            if color is None:
                continue
            for i in range(12):
                u, v = x1 + 3.5 + i % 4, y1 + 3.5 + i // 4
                points.append(INTRINSICS.pixel_to_point(u, v, PIECE_Z))
                colors.append(color)
    return PointCloud(points, colors)


def synthetic_frame(pieces):
    image = np.full((SIZE, SIZE, 3), 90, dtype=np.uint8)
    return CameraFrame(image, synthetic_cloud(pieces), INTRINSICS)


class TestEstimatePieceColor(unittest.TestCase):
    def cloud(self, n_low, color=(200, 200, 200)):
        points = [[0, 0, 100]] + [[i, 0, 50] for i in range(n_low)]
        return PointCloud(points, [color] * (n_low + 1))

    def test_empty_cloud(self):
        self.assertEqual(estimate_piece_color(PointCloud()), config.COLOR_EMPTY)
        self.assertEqual(estimate_piece_color(None), config.COLOR_EMPTY)

    def test_uncolored_points_are_ignored(self):
        points = [[0, 0, 100]] + [[i, 0, 50] for i in range(30)]
        self.assertEqual(estimate_piece_color(PointCloud(points)), config.COLOR_EMPTY)

    def test_minimum_point_count(self):
        self.assertEqual(estimate_piece_color(self.cloud(9)), config.COLOR_EMPTY)
        self.assertEqual(estimate_piece_color(self.cloud(10)), config.COLOR_WHITE)

    def test_points_in_the_top_band_do_not_count(self):
        points = [[0, 0, 100]] + [[i, 0, 85] for i in range(30)]
        cloud = PointCloud(points, [(200, 200, 200)] * 31)
        self.assertEqual(estimate_piece_color(cloud), config.COLOR_EMPTY)

    def test_brightness_split(self):
        self.assertEqual(estimate_piece_color(self.cloud(10, (40, 60, 80))), config.COLOR_BLACK)
        # exactly on the split is black
        self.assertEqual(estimate_piece_color(self.cloud(10, (128, 128, 128))), config.COLOR_BLACK)
        self.assertEqual(estimate_piece_color(self.cloud(10, (129, 129, 129))), config.COLOR_WHITE)

    def test_tunable_thresholds(self):
        self.assertEqual(estimate_piece_color(self.cloud(5), min_points=5), config.COLOR_WHITE)
        self.assertEqual(estimate_piece_color(self.cloud(10, (100, 100, 100)), brightness_split=90),
                         config.COLOR_WHITE)
        self.assertEqual(estimate_piece_color(self.cloud(10), height_threshold=60), config.COLOR_EMPTY)


class TestSquareLayout(unittest.TestCase):
    def test_square_image(self):
        self.assertEqual(square_bounds(80, 80, 1, 'h'), (0, 0, 10, 10))
        self.assertEqual(square_bounds(80, 80, 1, 'a'), (70, 0, 80, 10))
        self.assertEqual(square_bounds(80, 80, 8, 'h'), (0, 70, 10, 80))
        self.assertEqual(square_bounds(80, 80, 2, 'e'), (30, 10, 40, 20))

    def test_wide_image_is_centered(self):
        self.assertEqual(square_bounds(100, 80, 1, 'h'), (10, 0, 20, 10))
        self.assertEqual(square_bounds(100, 80, 1, 'a'), (80, 0, 90, 10))

    def test_segment_order_and_names(self):
        squares = segment_squares(SIZE, SIZE, PointCloud(), INTRINSICS)
        self.assertEqual(len(squares), 64)
        self.assertEqual(squares[0].name, 'a1')
        self.assertEqual(squares[7].name, 'h1')
        self.assertEqual(squares[63].name, 'h8')
        self.assertTrue(all(sq.color == config.COLOR_EMPTY for sq in squares))


class TestPointCloud(unittest.TestCase):
    def test_from_depth_image(self):
        intrinsics = PinholeIntrinsics(width=2, height=2, fx=1.0, fy=1.0, ppx=0.0, ppy=0.0)
        depth = np.array([[500, 0], [500, 400]], dtype=np.uint16)
        color = np.zeros((2, 2, 3), dtype=np.uint8)
        color[1, 1] = (1, 2, 3)
        cloud = PointCloud.from_depth_image(depth, intrinsics, color)
        self.assertEqual(len(cloud), 3)
        self.assertEqual(cloud.points[2].tolist(), [400.0, 400.0, 400.0])
        self.assertEqual(cloud.colors[2].tolist(), [3, 2, 1])

    def test_extremes(self):
        cloud = PointCloud([[0, 0, 1], [2, 2, 5], [4, 4, 3]])
        self.assertEqual(cloud.highest().tolist(), [2, 2, 5])
        self.assertEqual(cloud.lowest().tolist(), [0, 0, 1])
        self.assertEqual(cloud.center().tolist(), [2, 2, 3])
        self.assertEqual(cloud.max_z, 5.0)


class TestPieceFinder(unittest.TestCase):
    def setUp(self):
        self.frame = synthetic_frame({'e2': WHITE, 'e7': BLACK})
        self.finder = PieceFinder(
            lambda: self.frame,
            RigidFrameTransform(),
            lambda image: BOARD_CORNERS,
            output_size=SIZE,
        )

    def test_occupancy(self):
        capture = self.finder.capture_all()
        occupancy = capture.occupancy()
        self.assertEqual(len(occupancy), 64)
        self.assertEqual(occupancy['e2'], config.COLOR_WHITE)
        self.assertEqual(occupancy['e7'], config.COLOR_BLACK)
        self.assertEqual(sum(1 for c in occupancy.values() if c != config.COLOR_EMPTY), 2)

    def test_labels_and_detections(self):
        capture = self.finder.capture_all()
        self.assertEqual(capture.find_object('e2').label, 'e2-1')
        self.assertEqual(capture.find_object('e7').label, 'e7-2')
        self.assertEqual(capture.find_object('d4').label, 'd4-0')
        self.assertIsNone(capture.find_object('z9'))

        self.assertEqual(len(capture.detections), 128)
        self.assertEqual(capture.find_detection('e2').bounds, (30, 10, 40, 20))

        low = capture.find_detection('x-e2')
        self.assertEqual(low.label, 'x-e2-1')
        x1, y1, x2, y2 = low.bounds
        self.assertEqual(x2 - x1, 2 * config.LOW_POINT_BOX)
        # box centered on the lowest (closest) piece point
        self.assertTrue(30 <= (x1 + x2) / 2 < 40)
        self.assertTrue(10 <= (y1 + y2) / 2 < 20)

    def test_square_clouds_in_world_frame(self):
        shift = np.eye(4)
        shift[:3, 3] = (1000, 0, 0)
        finder = PieceFinder(lambda: self.frame, RigidFrameTransform(shift),
                             lambda image: BOARD_CORNERS, output_size=SIZE)
        capture = finder.capture_all()
        camera_x = self.finder.capture_all().find_object('e2').cloud.center()[0]
        world_x = capture.find_object('e2').cloud.center()[0]
        self.assertAlmostEqual(world_x - camera_x, 1000.0)

    def test_debug_image(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'debug.png')
            self.finder.capture_all(debug_path=path)
            self.assertTrue(os.path.exists(path))

    def test_no_frame(self):
        finder = PieceFinder(lambda: None, RigidFrameTransform(), lambda image: BOARD_CORNERS)
        with self.assertRaises(VisionError):
            finder.capture_all()


if __name__ == '__main__':
    unittest.main()
