"""
Synthetic RGB-D camera for running the examples without hardware.

This module defines the SyntheticCamera class, which:
  - Generates a BGRA color test pattern and a depth ramp with a moving
    near-field disc and a "shadow" band without measurements
  - Only produces a new frame on every n-th poll (new_frame_every), like a
    sensor that is polled faster than its frame rate
  - Maps depth pixels into color space with a fixed scale and horizontal
    offset, a stand-in for the physical distance between the two cameras
  - Can simulate a missing device (fail_on_open)

Usage:
  python 3_probe_rgbd.py camera=synthetic
"""
import numpy as np

from rgbd_camera import RGBDCamera, SensorError

SHADOW_COLUMNS = 4


def depth_pattern(width, height, near_mm, far_mm, t=0):
    ramp = np.linspace(near_mm, far_mm, width, dtype=np.float32)
    depth = np.tile(ramp, (height, 1))

    # disc travelling left to right, closer than anything else
    cx = (t * 4) % width
    cy = height // 2
    radius = max(1, min(width, height) // 6)
    v, u = np.ogrid[0:height, 0:width]
    depth[(u - cx) ** 2 + (v - cy) ** 2 <= radius ** 2] = near_mm

    depth[:, :SHADOW_COLUMNS] = 0
    return depth.astype(np.uint16)


def color_pattern(width, height, t=0):
    color = np.empty((height, width, 4), dtype=np.uint8)
    color[..., 0] = np.linspace(0, 255, width, dtype=np.float32).astype(np.uint8)[None, :]
    color[..., 1] = np.linspace(0, 255, height, dtype=np.float32).astype(np.uint8)[:, None]
    color[..., 2] = t % 256
    color[..., 3] = 255
    return color


class SyntheticCamera(RGBDCamera):
    name = "synthetic"

    def __init__(
        self,
        color_width: int = 640,
        color_height: int = 360,
        depth_width: int = 320,
        depth_height: int = 240,
        offset_x: float = 8.0,
        near_mm: int = 500,
        far_mm: int = 4500,
        new_frame_every: int = 1,
        fail_on_open: bool = False,
        color: bool = True,
        depth: bool = True,
    ):
        if new_frame_every < 1:
            raise ValueError("new_frame_every must be >= 1")
        self.default_color_size = (color_width, color_height)
        self.default_depth_size = (depth_width, depth_height)
        self.offset_x = float(offset_x)
        self.near_mm = near_mm
        self.far_mm = far_mm
        self.new_frame_every = new_frame_every
        self.fail_on_open = fail_on_open
        self.frame_index = 0
        self._polls = {"color": 0, "depth": 0}
        super().__init__(color=color, depth=depth)

    def _open_device(self):
        if self.fail_on_open:
            raise SensorError("failed GetDefaultSensor: no synthetic device attached")
        self.depth_min_reliable = self.near_mm
        self.depth_max_reliable = self.far_mm
        self.frame_index = 0
        self._polls = {"color": 0, "depth": 0}

    def _ready(self, stream):
        self._polls[stream] += 1
        return self._polls[stream] % self.new_frame_every == 0

    def _acquire_color(self):
        if not self._ready("color"):
            return None
        return color_pattern(self.color_width, self.color_height, self.frame_index)

    def _acquire_depth(self):
        if not self._ready("depth"):
            return None
        frame = depth_pattern(
            self.depth_width, self.depth_height, self.near_mm, self.far_mm, self.frame_index
        )
        self.frame_index += 1
        return frame

    def _map_depth_to_color(self, depth):
        sx = self.color_width / self.depth_width
        sy = self.color_height / self.depth_height
        v, u = np.mgrid[0:self.depth_height, 0:self.depth_width].astype(np.float32)
        points = np.stack([u * sx + self.offset_x, v * sy], axis=-1)
        points[depth == 0] = -np.inf
        return points
