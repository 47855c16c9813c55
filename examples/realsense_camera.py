"""
RealSense camera backend for the RGB-D examples.

This module defines the RealSenseCamera class, which:
  - Configures BGRA color and z16 depth streams at a given resolution and frame rate
  - Polls the pipeline without blocking and hands color / depth frames to the
    matching reader
  - Converts depth to millimetres with the sensor's depth scale
  - Maps the depth frame into color space with the SDK's pointcloud texture
    coordinates, and single color pixels into depth space with
    rs2_project_color_pixel_to_depth_pixel
"""
import logging
import time

import numpy as np

from rgbd_camera import RGBDCamera, SensorError

log = logging.getLogger(__name__)


class RealSenseCamera(RGBDCamera):
    name = "realsense"
    default_color_size = (640, 480)
    default_depth_size = (640, 480)

    def __init__(
        self,
        width: int = 640,
        height: int = 480,
        hz: int = 30,
        depth_min_mm: int = 300,
        depth_max_mm: int = 3000,
        color: bool = True,
        depth: bool = True,
    ):
        self.width = width
        self.height = height
        self.hz = hz
        self.default_color_size = (width, height)
        self.default_depth_size = (width, height)

        self.config = None
        self.pipeline = None
        self.profile = None
        self.device = None
        self.depth_sensor = None
        self.product_line = None
        self._rs = None
        self._pointcloud = None
        self._started = False
        self._pending = {}
        self._frames = {}
        self._depth_scale = 0.001
        self._depth_to_mm = 1.0
        self._color_intrin = None
        self._depth_intrin = None
        self._depth_to_color = None
        self._color_to_depth = None

        super().__init__(color=color, depth=depth)
        self.depth_min_reliable = depth_min_mm
        self.depth_max_reliable = depth_max_mm

    def _open_device(self):
        import pyrealsense2 as rs

        try:
            self.config = rs.config()
            # both streams are needed for the depth <-> color mapping
            self.config.enable_stream(rs.stream.depth, self.width, self.height, rs.format.z16, self.hz)
            self.config.enable_stream(rs.stream.color, self.width, self.height, rs.format.bgra8, self.hz)

            self.pipeline = rs.pipeline()
            wrapper = rs.pipeline_wrapper(self.pipeline)
            resolved = self.config.resolve(wrapper)
            self.device = resolved.get_device()
            self.product_line = self.device.get_info(rs.camera_info.product_line)
            self.depth_sensor = self.device.first_depth_sensor()

            self.profile = self.pipeline.start(self.config)
            self._started = True

            color_profile = self.profile.get_stream(rs.stream.color).as_video_stream_profile()
            depth_profile = self.profile.get_stream(rs.stream.depth).as_video_stream_profile()
            color_intrin = color_profile.get_intrinsics()
            depth_intrin = depth_profile.get_intrinsics()
            depth_to_color = depth_profile.get_extrinsics_to(color_profile)
            color_to_depth = color_profile.get_extrinsics_to(depth_profile)
            depth_scale = self.depth_sensor.get_depth_scale()
            pointcloud = rs.pointcloud()
        except RuntimeError as e:
            raise SensorError(f"failed to start RealSense pipeline: {e}") from e

        self._rs = rs
        self._pointcloud = pointcloud
        self._color_intrin = color_intrin
        self._depth_intrin = depth_intrin
        self._depth_to_color = depth_to_color
        self._color_to_depth = color_to_depth
        self._depth_scale = depth_scale
        self._depth_to_mm = depth_scale * 1000.0
        self.color_width, self.color_height = color_intrin.width, color_intrin.height
        self.depth_width, self.depth_height = depth_intrin.width, depth_intrin.height
        log.info("RealSense product line: %s", self.product_line)

    def _close_device(self):
        if not self._started:
            return
        self._started = False
        self._pending.clear()
        self._frames.clear()
        self.pipeline.stop()

    def reset(self):
        if self.device is None:
            return
        try:
            self.device.hardware_reset()
        except RuntimeError as e:
            log.warning("hardware reset failed: %s", e)
        time.sleep(0.1)

    def _poll(self):
        try:
            frames = self.pipeline.poll_for_frames()
        except RuntimeError as e:
            raise SensorError(f"failed poll_for_frames: {e}") from e
        if not frames:
            return
        color_frame = frames.get_color_frame()
        depth_frame = frames.get_depth_frame()
        if color_frame:
            self._pending["color"] = color_frame
        if depth_frame:
            self._pending["depth"] = depth_frame

    def _take(self, stream):
        if stream not in self._pending:
            self._poll()
        frame = self._pending.pop(stream, None)
        if frame is None:
            return None
        # the SDK frame is kept for the mapping calls
        self._frames[stream] = frame
        return np.asanyarray(frame.get_data()).copy()

    def _acquire_color(self):
        return self._take("color")

    def _acquire_depth(self):
        raw = self._take("depth")
        if raw is None:
            return None
        if abs(self._depth_to_mm - 1.0) < 1e-6:
            return raw
        mm = np.rint(raw.astype(np.float32) * self._depth_to_mm)
        return np.clip(mm, 0, np.iinfo(np.uint16).max).astype(np.uint16)

    def _map_depth_to_color(self, depth):
        color_frame = self._frames.get("color")
        depth_frame = self._frames.get("depth")
        if color_frame is None or depth_frame is None:
            return np.full((self.depth_height, self.depth_width, 2), -np.inf, dtype=np.float32)

        try:
            self._pointcloud.map_to(color_frame)
            points = self._pointcloud.calculate(depth_frame)
        except RuntimeError as e:
            raise SensorError(f"failed pointcloud.calculate: {e}") from e

        # texture coordinates are normalized to the color frame
        uv = np.asanyarray(points.get_texture_coordinates()).view(np.float32)
        uv = uv.reshape(self.depth_height, self.depth_width, 2)
        pixels = uv * np.array([self.color_width, self.color_height], dtype=np.float32)
        pixels[depth == 0] = -np.inf
        return pixels

    def color_point_to_depth(self, x: int, y: int):
        depth_frame = self._frames.get("depth")
        if not self._opened or depth_frame is None:
            return None
        if not (0 <= x < self.color_width and 0 <= y < self.color_height):
            return None

        try:
            px, py = self._rs.rs2_project_color_pixel_to_depth_pixel(
                depth_frame.get_data(),
                self._depth_scale,
                self.depth_min_reliable / 1000.0,
                self.depth_max_reliable / 1000.0,
                self._depth_intrin,
                self._color_intrin,
                self._depth_to_color,
                self._color_to_depth,
                [float(x), float(y)],
            )
        except RuntimeError as e:
            raise SensorError(f"failed rs2_project_color_pixel_to_depth_pixel: {e}") from e

        # the SDK reports (-1, -1) when no depth pixel matches
        px, py = int(np.floor(px + 0.5)), int(np.floor(py + 0.5))
        if not (0 <= px < self.depth_width and 0 <= py < self.depth_height):
            return None
        return px, py
