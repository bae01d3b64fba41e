"""
Plane geometry helpers used to rectify the board.

The homography comes from an 8x8 linear system solved with gaussian
elimination and partial pivoting; a zero pivot raises SingularHomographyError.
"""

import numpy as np

from .errors import SingularHomographyError, DegenerateProjectionError

PIVOT_EPSILON = 1e-12


# ─────────────────────────────────────────────────────────────────────────────
# HOMOGRAPHY
# ─────────────────────────────────────────────────────────────────────────────

def solve_linear_system(A, b, epsilon=PIVOT_EPSILON):
    """
    Solve A x = b with gaussian elimination and partial pivoting.

    Args:
        A: (n, n) matrix.
        b: (n,) right hand side.
        epsilon: pivots with a magnitude at or below this are singular.

    Returns:
        x as a (n,) float array.

    Raises:
        SingularHomographyError if a pivot column is all zeros.
    """
    A = np.array(A, dtype=np.float64)
    b = np.array(b, dtype=np.float64)
    n = len(b)

    for col in range(n):
        # largest magnitude pivot of the remaining rows
        max_row = col + int(np.argmax(np.abs(A[col:, col])))
        if abs(A[max_row, col]) <= epsilon:
            raise SingularHomographyError(
                f"singular corner configuration (zero pivot in column {col})")

        if max_row != col:
            A[[col, max_row]] = A[[max_row, col]]
            b[[col, max_row]] = b[[max_row, col]]

        for row in range(col + 1, n):
            factor = A[row, col] / A[col, col]
            A[row, col:] -= factor * A[col, col:]
            b[row] -= factor * b[col]

    x = np.zeros(n, dtype=np.float64)
    for i in range(n - 1, -1, -1):
        x[i] = (b[i] - np.dot(A[i, i + 1:], x[i + 1:])) / A[i, i]
    return x


def solve_homography(src, dst):
    """
    Compute the 3x3 projective matrix H such that dst ~ H . src.

    Args:
        src: 4 (x, y) source points.
        dst: 4 (x, y) destination points, same order.

    Returns:
        (3, 3) float array with H[2, 2] == 1.
    """
    src = np.asarray(src, dtype=np.float64).reshape(-1, 2)
    dst = np.asarray(dst, dtype=np.float64).reshape(-1, 2)
    if len(src) != 4 or len(dst) != 4:
        raise ValueError(f"need 4 point pairs, got {len(src)} and {len(dst)}")

    # x' = (h0 x + h1 y + h2) / (h6 x + h7 y + 1)
    # y' = (h3 x + h4 y + h5) / (h6 x + h7 y + 1)
    A = np.zeros((8, 8), dtype=np.float64)
    b = np.zeros(8, dtype=np.float64)
    for i, ((sx, sy), (dx, dy)) in enumerate(zip(src, dst)):
        A[2 * i] = [sx, sy, 1, 0, 0, 0, -dx * sx, -dx * sy]
        b[2 * i] = dx
        A[2 * i + 1] = [0, 0, 0, sx, sy, 1, -dy * sx, -dy * sy]
        b[2 * i + 1] = dy

    h = solve_linear_system(A, b)
    return np.append(h, 1.0).reshape(3, 3)


def apply_homography(H, x, y, strict=False):
    """
    Map one point through H with the projective divide.

    A zero homogeneous weight is clamped to 1 unless strict is set, in which
    case DegenerateProjectionError is raised.
    """
    w = H[2, 0] * x + H[2, 1] * y + H[2, 2]
    if w == 0:
        if strict:
            raise DegenerateProjectionError(f"point ({x}, {y}) maps to infinity")
        w = 1.0
    nx = (H[0, 0] * x + H[0, 1] * y + H[0, 2]) / w
    ny = (H[1, 0] * x + H[1, 1] * y + H[1, 2]) / w
    return float(nx), float(ny)


def apply_homography_array(H, xs, ys, strict=False):
    """Vectorized apply_homography over arrays of x and y."""
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    w = H[2, 0] * xs + H[2, 1] * ys + H[2, 2]
    zero = w == 0
    if np.any(zero):
        if strict:
            raise DegenerateProjectionError(f"{int(zero.sum())} point(s) map to infinity")
        w = np.where(zero, 1.0, w)
    nx = (H[0, 0] * xs + H[0, 1] * ys + H[0, 2]) / w
    ny = (H[1, 0] * xs + H[1, 1] * ys + H[1, 2]) / w
    return nx, ny


# ─────────────────────────────────────────────────────────────────────────────
# POLYGONS
# ─────────────────────────────────────────────────────────────────────────────

def point_in_polygon(x, y, polygon):
    """Even-odd ray casting test of (x, y) against a closed polygon."""
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i][0], polygon[i][1]
        xj, yj = polygon[j][0], polygon[j][1]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def points_in_polygon(xs, ys, polygon):
    """Vectorized point_in_polygon, returns a boolean mask."""
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    inside = np.zeros(xs.shape, dtype=bool)
    poly = np.asarray(polygon, dtype=np.float64)
    n = len(poly)
    j = n - 1
    for i in range(n):
        xi, yi = poly[i]
        xj, yj = poly[j]
        crosses = (yi > ys) != (yj > ys)
        if yj != yi:
            x_cross = (xj - xi) * (ys - yi) / (yj - yi) + xi
            inside ^= crosses & (xs < x_cross)
        j = i
    return inside


# ─────────────────────────────────────────────────────────────────────────────
# RESAMPLING
# ─────────────────────────────────────────────────────────────────────────────

def bilinear_sample_array(image, xs, ys):
    """
    Bilinear interpolation of image at float coordinates.

    Coordinates outside the image clamp to the nearest valid pixel so every
    sample is defined.

    Args:
        image: (H, W) or (H, W, C) array.
        xs, ys: arrays of the same shape.

    Returns:
        float64 array of shape xs.shape (+ (C,) for color images).
    """
    h, w = image.shape[:2]
    xs = np.clip(np.asarray(xs, dtype=np.float64), 0, w - 1)
    ys = np.clip(np.asarray(ys, dtype=np.float64), 0, h - 1)

    x0 = np.floor(xs).astype(np.intp)
    y0 = np.floor(ys).astype(np.intp)
    x1 = np.minimum(x0 + 1, w - 1)
    y1 = np.minimum(y0 + 1, h - 1)
    fx = xs - x0
    fy = ys - y0

    img = image.astype(np.float64)
    if img.ndim == 3:
        fx = fx[..., None]
        fy = fy[..., None]

    return (img[y0, x0] * (1 - fx) * (1 - fy)
            + img[y0, x1] * fx * (1 - fy)
            + img[y1, x0] * (1 - fx) * fy
            + img[y1, x1] * fx * fy)


def bilinear_sample(image, x, y):
    """Sample one color (or gray value) at (x, y)."""
    return bilinear_sample_array(image, np.array([x]), np.array([y]))[0]
