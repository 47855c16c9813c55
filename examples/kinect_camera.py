"""
Kinect v2 camera backend for the RGB-D examples.

This module defines the KinectCamera class, which:
  - Opens the default Kinect v2 sensor through pykinect2's runtime
  - Opens the color (converted to BGRA) and/or depth frame readers
  - Reads the frame sizes and the depth source's reliable range
  - Returns the latest frame without blocking, or None when there is none
  - Maps whole frames between depth space and color space with the
    sensor's ICoordinateMapper

pykinect2 only works on Windows with the Kinect for Windows SDK 2.0
installed, so it is imported when the camera is opened.
"""
import ctypes

import numpy as np

from rgbd_camera import RGBDCamera, SensorError


class KinectCamera(RGBDCamera):
    name = "kinect"
    default_color_size = (1920, 1080)
    default_depth_size = (512, 424)

    def __init__(self, color: bool = True, depth: bool = True):
        self._runtime = None
        self._v2 = None
        self._sdk_errors = (OSError, ctypes.ArgumentError)
        super().__init__(color=color, depth=depth)

    def _call(self, what, fn, *args):
        try:
            return fn(*args)
        except self._sdk_errors as e:
            raise SensorError(f"failed {what}: {e}") from e

    def _open_device(self):
        try:
            from comtypes import COMError
            from pykinect2 import PyKinectRuntime, PyKinectV2
        except (ImportError, AttributeError, OSError) as e:
            # pykinect2 loads Windows-only libraries at import time
            raise SensorError(f"failed to load pykinect2: {e}") from e

        self._v2 = PyKinectV2
        self._sdk_errors = (COMError, OSError, ctypes.ArgumentError)

        sources = 0
        if self.use_color:
            sources |= PyKinectV2.FrameSourceTypes_Color
        if self.use_depth:
            sources |= PyKinectV2.FrameSourceTypes_Depth

        self._runtime = self._call(
            "GetDefaultKinectSensor / Open", PyKinectRuntime.PyKinectRuntime, sources
        )

        # the depth frame size is needed for mapping even in color-only mode
        def read_descriptions():
            color = None
            if self.use_color:
                desc = self._runtime.color_frame_desc
                color = (desc.Width, desc.Height, desc.BytesPerPixel)
            source = self._runtime._sensor.DepthFrameSource
            desc = source.FrameDescription
            depth = (
                desc.Width,
                desc.Height,
                source.DepthMinReliableDistance,
                source.DepthMaxReliableDistance,
            )
            return color, depth

        color, depth = self._call("get_FrameDescription", read_descriptions)
        if color is not None:
            self.color_width, self.color_height, self.color_bytes_per_pixel = map(int, color)
        self.depth_width, self.depth_height = int(depth[0]), int(depth[1])
        self.depth_min_reliable, self.depth_max_reliable = int(depth[2]), int(depth[3])

    def _close_device(self):
        if self._runtime is not None:
            self._runtime.close()
            self._runtime = None

    def _acquire_color(self):
        if not self._runtime.has_new_color_frame():
            return None
        return self._call("CopyConvertedFrameDataToArray", self._runtime.get_last_color_frame)

    def _acquire_depth(self):
        if not self._runtime.has_new_depth_frame():
            return None
        return self._call("CopyFrameDataToArray", self._runtime.get_last_depth_frame)

    def _map_depth_to_color(self, depth):
        depth = np.ascontiguousarray(depth, dtype=np.uint16)
        points = np.empty((self.depth_height, self.depth_width, 2), dtype=np.float32)
        self._call(
            "MapDepthFrameToColorSpace",
            self._runtime._mapper.MapDepthFrameToColorSpace,
            ctypes.c_uint(depth.size),
            depth.ctypes.data_as(ctypes.POINTER(ctypes.c_ushort)),
            ctypes.c_uint(self.depth_width * self.depth_height),
            points.ctypes.data_as(ctypes.POINTER(self._v2._ColorSpacePoint)),
        )
        return points

    def _map_color_to_depth(self, depth):
        depth = np.ascontiguousarray(depth, dtype=np.uint16)
        points = np.empty((self.color_height, self.color_width, 2), dtype=np.float32)
        self._call(
            "MapColorFrameToDepthSpace",
            self._runtime._mapper.MapColorFrameToDepthSpace,
            ctypes.c_uint(depth.size),
            depth.ctypes.data_as(ctypes.POINTER(ctypes.c_ushort)),
            ctypes.c_uint(self.color_width * self.color_height),
            points.ctypes.data_as(ctypes.POINTER(self._v2._DepthSpacePoint)),
        )
        return points
