"""
Depth / color image helpers for the RGB-D examples.

This module provides:
  - depth_to_gray(): clamp 16-bit depth to [min, max] and rescale to 8 bits
  - color_on_depth() / depth_on_color(): register one sensor's pixels onto
    the other sensor's pixel grid using a per-pixel point map
  - invert_point_map(): turn a depth->color point map into a color->depth one
  - lookup_point(): map a single pixel through a point map
  - gray_to_bgr() / mark_point(): small OpenCV drawing helpers

Point maps are float arrays of shape (H, W, 2) holding an (x, y) point in
the other sensor's pixel grid. Unmappable pixels hold -inf.
"""
import numpy as np


def depth_to_gray(depth, min_mm, max_mm):
    if max_mm <= min_mm:
        raise ValueError(f"max_mm ({max_mm}) must be greater than min_mm ({min_mm})")

    d = np.asarray(depth).astype(np.float32)
    scaled = np.floor((d - min_mm) * 255.0 / (max_mm - min_mm))
    return np.clip(scaled, 0, 255).astype(np.uint8)


def round_points(points):
    """
    Round a point map half-up to integer pixel coordinates.

    Returns (xs, ys, finite) where finite marks the points that had
    finite coordinates; rounded values of non-finite points are 0.
    """
    points = np.asarray(points, dtype=np.float32)
    finite = np.isfinite(points).all(axis=-1)
    safe = np.where(finite[..., None], points, 0.0)
    rounded = np.floor(safe + 0.5).astype(np.int64)
    return rounded[..., 0], rounded[..., 1], finite


def _in_frame(xs, ys, finite, width, height):
    return finite & (xs >= 0) & (xs < width) & (ys >= 0) & (ys < height)


def color_on_depth(color, depth_to_color):
    color = np.asarray(color)
    height, width = color.shape[:2]
    xs, ys, finite = round_points(depth_to_color)
    valid = _in_frame(xs, ys, finite, width, height)

    out = np.zeros(depth_to_color.shape[:2] + color.shape[2:], dtype=color.dtype)
    if color.ndim == 2:
        out[valid] = color[ys[valid], xs[valid]]
    else:
        # alpha (if any) is left at zero
        channels = min(3, color.shape[2])
        out[valid, :channels] = color[ys[valid], xs[valid], :channels]
    return out


def depth_on_color(depth, depth_to_color, color_shape):
    depth = np.asarray(depth)
    if depth.shape != depth_to_color.shape[:2]:
        raise ValueError(
            f"depth shape {depth.shape} does not match point map {depth_to_color.shape[:2]}"
        )
    height, width = color_shape[:2]
    xs, ys, finite = round_points(depth_to_color)
    valid = _in_frame(xs, ys, finite, width, height)

    out = np.zeros((height, width), dtype=np.uint16)
    out[ys[valid], xs[valid]] = depth[valid]
    return out


def depth_on_color_gray(depth, depth_to_color, color_shape, min_mm, max_mm):
    return depth_to_gray(depth_on_color(depth, depth_to_color, color_shape), min_mm, max_mm)


def invert_point_map(depth_to_color, color_shape):
    """
    Build a color->depth point map from a depth->color one.

    Each depth pixel is written at the color pixel it rounds to; color
    pixels no depth pixel lands on stay at -inf. When several depth pixels
    land on the same color pixel the last one (in row-major order) wins.
    """
    height, width = color_shape[:2]
    xs, ys, finite = round_points(depth_to_color)
    valid = _in_frame(xs, ys, finite, width, height)

    dh, dw = depth_to_color.shape[:2]
    v, u = np.mgrid[0:dh, 0:dw].astype(np.float32)

    out = np.full((height, width, 2), -np.inf, dtype=np.float32)
    out[ys[valid], xs[valid], 0] = u[valid]
    out[ys[valid], xs[valid], 1] = v[valid]
    return out


def lookup_point(points, x, y):
    height, width = points.shape[:2]
    if not (0 <= x < width and 0 <= y < height):
        return None
    px, py = points[y, x]
    if not (np.isfinite(px) and np.isfinite(py)):
        return None
    return int(np.floor(px + 0.5)), int(np.floor(py + 0.5))


def gray_to_bgr(gray):
    import cv2

    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)


def mark_point(image, point, radius=3, color=(0, 0, 255)):
    import cv2

    cv2.circle(image, (int(point[0]), int(point[1])), radius, color, 1, cv2.LINE_AA)
    return image
