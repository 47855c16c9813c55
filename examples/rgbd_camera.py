"""
Sensor-independent RGB-D camera base class for the examples.

This module defines the RGBDCamera class, which:
  - Holds the color (BGRA, uint8) and depth (millimetres, uint16) buffers
  - Polls the backend for the latest frame and copies it into the buffers
    ("no new frame" is a normal condition, not an error)
  - Converts depth into 8-bit grayscale for display
  - Registers color onto the depth grid and depth onto the color grid using
    the backend's coordinate mapping
  - Maps single color pixels into depth space for point probing

Backends (kinect_camera, realsense_camera, synthetic_camera) only override
the device hooks. Every SDK failure surfaces as SensorError.
"""
import logging

import numpy as np

import depth_image

log = logging.getLogger(__name__)


class SensorError(RuntimeError):
    pass


class RGBDCamera:
    name = "rgbd"
    default_color_size = (1920, 1080)
    default_depth_size = (512, 424)
    color_bytes_per_pixel = 4

    def __init__(self, color: bool = True, depth: bool = True):
        if not (color or depth):
            raise ValueError("at least one of color / depth must be enabled")
        self.use_color = color
        self.use_depth = depth
        self._opened = False

        self.color_width, self.color_height = self.default_color_size
        self.depth_width, self.depth_height = self.default_depth_size
        self.depth_min_reliable = 0
        self.depth_max_reliable = 0
        self._allocate_buffers()

    def _allocate_buffers(self):
        self.color_buffer = np.zeros(
            (self.color_height, self.color_width, self.color_bytes_per_pixel), dtype=np.uint8
        )
        self.depth_buffer = np.zeros((self.depth_height, self.depth_width), dtype=np.uint16)

    # ------------------------------------------------------------------
    # backend hooks
    # ------------------------------------------------------------------
    def _open_device(self):
        raise NotImplementedError

    def _close_device(self):
        pass

    def _acquire_color(self):
        raise NotImplementedError

    def _acquire_depth(self):
        raise NotImplementedError

    def _map_depth_to_color(self, depth: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _map_color_to_depth(self, depth: np.ndarray) -> np.ndarray:
        return depth_image.invert_point_map(
            self._map_depth_to_color(depth), (self.color_height, self.color_width)
        )

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self):
        if self._opened:
            return self
        try:
            self._open_device()
        except SensorError:
            self._close_quietly()
            raise
        except (ImportError, OSError) as e:
            self._close_quietly()
            raise SensorError(f"failed to open {self.name} device: {e}") from e

        self._allocate_buffers()
        self._opened = True

        if self.use_color:
            log.info(
                "color : %d x %d, %d bytes/pixel",
                self.color_width, self.color_height, self.color_bytes_per_pixel,
            )
        if self.use_depth:
            log.info("depth : %d x %d", self.depth_width, self.depth_height)
            log.info(
                "depth reliable range : %d - %d mm",
                self.depth_min_reliable, self.depth_max_reliable,
            )
        return self

    def _close_quietly(self):
        try:
            self._close_device()
        except Exception as e:
            log.debug("ignoring error while closing %s: %s", self.name, e)

    def close(self):
        if not self._opened:
            return
        self._opened = False
        self._close_device()

    def __del__(self):
        try:
            self.close()
        except Exception:
            pass

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    # ------------------------------------------------------------------
    # frame acquisition
    # ------------------------------------------------------------------
    @staticmethod
    def _copy_into(buffer, frame, what):
        frame = np.asarray(frame)
        if frame.size != buffer.size:
            raise SensorError(
                f"failed to copy {what} frame: got {frame.size} values, expected {buffer.size}"
            )
        buffer[...] = frame.reshape(buffer.shape)

    def update_color_frame(self) -> bool:
        if not (self._opened and self.use_color):
            return False
        frame = self._acquire_color()
        if frame is None:
            return False
        self._copy_into(self.color_buffer, frame, "color")
        return True

    def update_depth_frame(self) -> bool:
        if not (self._opened and self.use_depth):
            return False
        frame = self._acquire_depth()
        if frame is None:
            return False
        self._copy_into(self.depth_buffer, frame, "depth")
        return True

    def update_rgbd_frame(self) -> bool:
        # depth is only polled once a new color frame arrived
        if not self.update_color_frame():
            return False
        return self.update_depth_frame()

    # ------------------------------------------------------------------
    # images
    # ------------------------------------------------------------------
    def color_image(self) -> np.ndarray:
        return self.color_buffer

    def depth_raw_image(self) -> np.ndarray:
        return self.depth_buffer.copy()

    def depth_gray_image(self, min_mm: int, max_mm: int) -> np.ndarray:
        return depth_image.depth_to_gray(self.depth_buffer, min_mm, max_mm)

    def depth_to_color_points(self) -> np.ndarray:
        if not self._opened:
            return np.full((self.depth_height, self.depth_width, 2), -np.inf, dtype=np.float32)
        return self._map_depth_to_color(self.depth_buffer)

    def color_to_depth_points(self) -> np.ndarray:
        if not self._opened:
            return np.full((self.color_height, self.color_width, 2), -np.inf, dtype=np.float32)
        return self._map_color_to_depth(self.depth_buffer)

    def color_on_depth_image(self) -> np.ndarray:
        return depth_image.color_on_depth(self.color_buffer, self.depth_to_color_points())

    def depth_on_color_raw_image(self) -> np.ndarray:
        return depth_image.depth_on_color(
            self.depth_buffer, self.depth_to_color_points(), (self.color_height, self.color_width)
        )

    def depth_on_color_gray_image(self, min_mm: int, max_mm: int) -> np.ndarray:
        return depth_image.depth_on_color_gray(
            self.depth_buffer,
            self.depth_to_color_points(),
            (self.color_height, self.color_width),
            min_mm,
            max_mm,
        )

    def color_point_to_depth(self, x: int, y: int):
        return depth_image.lookup_point(self.color_to_depth_points(), x, y)
