import unittest
import cv2
import numpy as np

from ChessArm.errors import VisionError
from ChessArm.corner_finder import MarkerCornerFinder, order_corners

CORNERS = [(50, 50), (250, 50), (250, 250), (50, 250)]


def draw_board(centers):
    """White image with one ring marker (3 black rings) at each center."""
    image = np.full((300, 300, 3), 255, dtype=np.uint8)
    for center in centers:
        for radius in (8, 16, 24):
            cv2.circle(image, center, radius, (0, 0, 0), 2)
    return image


class TestOrderCorners(unittest.TestCase):
    def test_any_order(self):
        expected = np.array(CORNERS, dtype=np.float64)
        for perm in [(0, 1, 2, 3), (2, 0, 3, 1), (3, 2, 1, 0), (1, 3, 0, 2)]:
            shuffled = [CORNERS[i] for i in perm]
            np.testing.assert_array_equal(order_corners(shuffled), expected)

    def test_tilted_board(self):
        points = [(110, 210), (10, 100), (200, 5), (300, 120)]
        np.testing.assert_array_equal(order_corners(points),
                                      [[10, 100], [200, 5], [300, 120], [110, 210]])

    def test_wrong_count(self):
        with self.assertRaises(VisionError):
            order_corners(CORNERS[:3])


class TestMarkerCornerFinder(unittest.TestCase):
    def test_finds_four_markers(self):
        corners = MarkerCornerFinder()(draw_board(CORNERS))
        np.testing.assert_allclose(corners, CORNERS, atol=2)

    def test_blank_image(self):
        with self.assertRaises(VisionError):
            MarkerCornerFinder().find_corners(np.full((300, 300, 3), 255, dtype=np.uint8))

    def test_missing_marker(self):
        with self.assertRaises(VisionError):
            MarkerCornerFinder().find_corners(draw_board(CORNERS[:3]))

    def test_no_image(self):
        with self.assertRaises(VisionError):
            MarkerCornerFinder().find_corners(None)


if __name__ == '__main__':
    unittest.main()
