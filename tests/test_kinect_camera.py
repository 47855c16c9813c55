"""
Tests for the Kinect v2 backend.

The runtime and coordinate mapper are replaced by fakes that write
through the same ctypes pointers the Kinect SDK fills in.
"""

import ctypes
import sys
import unittest
from types import SimpleNamespace
from unittest import mock

import numpy as np

from kinect_camera import KinectCamera
from rgbd_camera import SensorError


class _Point(ctypes.Structure):
    _fields_ = [("X", ctypes.c_float), ("Y", ctypes.c_float)]


class FakeMapper:
    """Writes (index, depth value) for every point."""

    def __init__(self, fail=False):
        self.fail = fail

    def _fill(self, count, depth, point_count, points):
        if self.fail:
            raise OSError("E_FAIL")
        for i in range(point_count.value):
            points[i].X = float(i)
            points[i].Y = float(depth[i % count.value])

    MapDepthFrameToColorSpace = _fill
    MapColorFrameToDepthSpace = _fill


class FakeRuntime:
    def __init__(self, color=None, depth=None, mapper=None):
        self.color = color
        self.depth = depth
        self._mapper = mapper or FakeMapper()
        self.closed = False

    def has_new_color_frame(self):
        return self.color is not None

    def get_last_color_frame(self):
        return self.color

    def has_new_depth_frame(self):
        return self.depth is not None

    def get_last_depth_frame(self):
        return self.depth

    def close(self):
        self.closed = True


class FakeDepthSource:
    def __init__(self, fail=False):
        self.fail = fail
        self.DepthMinReliableDistance = 500
        self.DepthMaxReliableDistance = 4500

    @property
    def FrameDescription(self):
        if self.fail:
            raise OSError("E_PENDING")
        return SimpleNamespace(Width=6, Height=4)


class FakeSDKRuntime(FakeRuntime):
    """Stands in for PyKinectRuntime.PyKinectRuntime(sources)."""

    instances = []

    def __init__(self, sources, fail_depth_source=False):
        super().__init__()
        self.sources = sources
        self.color_frame_desc = SimpleNamespace(Width=8, Height=6, BytesPerPixel=4)
        self._sensor = SimpleNamespace(DepthFrameSource=FakeDepthSource(fail_depth_source))
        FakeSDKRuntime.instances.append(self)


class FakeCOMError(Exception):
    pass


def fake_sdk_modules(fail_depth_source=False):
    def runtime(sources):
        return FakeSDKRuntime(sources, fail_depth_source)

    v2 = SimpleNamespace(FrameSourceTypes_Color=1, FrameSourceTypes_Depth=8)
    package = SimpleNamespace(
        PyKinectRuntime=SimpleNamespace(PyKinectRuntime=runtime), PyKinectV2=v2
    )
    return {"comtypes": SimpleNamespace(COMError=FakeCOMError), "pykinect2": package}


class TestKinectOpen(unittest.TestCase):

    def setUp(self):
        FakeSDKRuntime.instances = []

    def test_open_reads_frame_descriptions(self):
        with mock.patch.dict(sys.modules, fake_sdk_modules()):
            cam = KinectCamera().open()

        runtime = FakeSDKRuntime.instances[0]
        self.assertEqual(runtime.sources, 1 | 8)
        self.assertEqual((cam.color_width, cam.color_height), (8, 6))
        self.assertEqual((cam.depth_width, cam.depth_height), (6, 4))
        self.assertEqual((cam.depth_min_reliable, cam.depth_max_reliable), (500, 4500))
        self.assertEqual(cam.color_buffer.shape, (6, 8, 4))
        self.assertEqual(cam.depth_buffer.shape, (4, 6))
        cam.close()
        self.assertTrue(runtime.closed)

    def test_depth_only_keeps_nominal_color_size(self):
        with mock.patch.dict(sys.modules, fake_sdk_modules()):
            cam = KinectCamera(color=False).open()
        self.assertEqual(FakeSDKRuntime.instances[0].sources, 8)
        self.assertEqual((cam.color_width, cam.color_height), (1920, 1080))
        self.assertEqual(cam.depth_buffer.shape, (4, 6))
        cam.close()

    def test_failed_description_leaves_sizes_untouched(self):
        cam = KinectCamera()
        with mock.patch.dict(sys.modules, fake_sdk_modules(fail_depth_source=True)):
            with self.assertRaises(SensorError) as ctx:
                cam.open()

        self.assertIn("get_FrameDescription", str(ctx.exception))
        self.assertFalse(cam.is_open)
        self.assertTrue(FakeSDKRuntime.instances[0].closed)
        self.assertEqual((cam.color_width, cam.color_height), (1920, 1080))
        self.assertEqual((cam.depth_width, cam.depth_height), (512, 424))
        self.assertEqual(cam.color_buffer.shape, (cam.color_height, cam.color_width, 4))
        self.assertEqual(cam.depth_buffer.shape, (cam.depth_height, cam.depth_width))

    def test_windows_only_import_failure(self):
        with mock.patch.dict(sys.modules, {"comtypes": None}):
            with self.assertRaises(SensorError) as ctx:
                KinectCamera().open()
        self.assertIn("pykinect2", str(ctx.exception))


def make_camera(runtime, color_size=(3, 2), depth_size=(4, 2)):
    cam = KinectCamera()
    cam.color_width, cam.color_height = color_size
    cam.depth_width, cam.depth_height = depth_size
    cam._allocate_buffers()
    cam._runtime = runtime
    cam._v2 = SimpleNamespace(_ColorSpacePoint=_Point, _DepthSpacePoint=_Point)
    cam._opened = True
    return cam


class TestKinectCamera(unittest.TestCase):

    def test_nominal_sizes(self):
        cam = KinectCamera()
        self.assertEqual(cam.color_buffer.shape, (1080, 1920, 4))
        self.assertEqual(cam.depth_buffer.shape, (424, 512))

    @unittest.skipIf(sys.platform == "win32", "the Kinect SDK may be present on Windows")
    def test_open_without_sdk(self):
        cam = KinectCamera()
        with self.assertRaises(SensorError):
            cam.open()
        self.assertFalse(cam.is_open)
        self.assertIsNone(cam.color_point_to_depth(960, 540))

    def test_acquire_frames(self):
        color = np.full(3 * 2 * 4, 9, dtype=np.uint8)
        depth = np.arange(8, dtype=np.uint16)
        cam = make_camera(FakeRuntime(color=color, depth=depth))

        self.assertTrue(cam.update_rgbd_frame())
        self.assertTrue((cam.color_buffer == 9).all())
        self.assertEqual(cam.depth_buffer.tolist(), [[0, 1, 2, 3], [4, 5, 6, 7]])

    def test_no_new_frame(self):
        cam = make_camera(FakeRuntime())
        self.assertFalse(cam.update_color_frame())
        self.assertFalse(cam.update_depth_frame())

    def test_depth_to_color_points(self):
        depth = np.arange(10, 18, dtype=np.uint16)
        cam = make_camera(FakeRuntime(color=np.zeros(24, np.uint8), depth=depth))
        cam.update_rgbd_frame()

        points = cam.depth_to_color_points()
        self.assertEqual(points.shape, (2, 4, 2))
        self.assertEqual(points[1, 2].tolist(), [6.0, 16.0])

    def test_color_to_depth_points(self):
        depth = np.arange(8, dtype=np.uint16)
        cam = make_camera(FakeRuntime(color=np.zeros(24, np.uint8), depth=depth))
        cam.update_rgbd_frame()

        points = cam.color_to_depth_points()
        self.assertEqual(points.shape, (2, 3, 2))
        self.assertEqual(points[1, 0].tolist(), [3.0, 3.0])
        self.assertEqual(cam.color_point_to_depth(0, 1), (3, 3))

    def test_mapper_failure(self):
        cam = make_camera(FakeRuntime(mapper=FakeMapper(fail=True)))
        with self.assertRaises(SensorError) as ctx:
            cam.depth_to_color_points()
        self.assertIn("MapDepthFrameToColorSpace", str(ctx.exception))

    def test_close_releases_runtime(self):
        runtime = FakeRuntime()
        cam = make_camera(runtime)
        cam.close()
        self.assertTrue(runtime.closed)
        self.assertIsNone(cam._runtime)


if __name__ == "__main__":
    unittest.main()
