"""
OpenCV display helpers shared by the RGB-D example scripts.

This module provides:
  - MouseProbe: mouse callback that tracks a left-button drag inside a window
  - create_window() / resize_for_display(): window and scaling helpers
  - render_*(): build the images each example shows from an RGBDCamera
  - run_loop() / run_viewer(): the polling loop, quit key handling and
    top-level error reporting

Keys:
  q : quit (configurable with display.quit_key)
"""
import logging

import cv2

import depth_image
from rgbd_camera import SensorError

log = logging.getLogger(__name__)


class MouseProbe:
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.active = False
        self.x = 0
        self.y = 0

    def __call__(self, event, x, y, flags, param=None):
        if x < 0 or y < 0 or x > self.width or y > self.height:
            return

        dragging = event in (cv2.EVENT_LBUTTONDOWN, cv2.EVENT_MOUSEMOVE)
        if dragging and (flags & cv2.EVENT_FLAG_LBUTTON):
            self.active = True
            self.x = x
            self.y = y
        else:
            self.active = False

    @property
    def point(self):
        return (self.x, self.y) if self.active else None


def create_window(name: str, probe: MouseProbe = None):
    cv2.namedWindow(name, cv2.WINDOW_AUTOSIZE | cv2.WINDOW_KEEPRATIO | cv2.WINDOW_GUI_NORMAL)
    if probe is not None:
        cv2.setMouseCallback(name, probe)


def resize_for_display(image, scale: float):
    if scale <= 0:
        raise ValueError(f"resize scale must be positive, got {scale}")
    if scale == 1.0:
        return image
    return cv2.resize(image, None, fx=scale, fy=scale)


def render_color(camera, scale: float):
    return resize_for_display(camera.color_image(), scale)


def render_depth(camera, min_mm: int, max_mm: int):
    return camera.depth_gray_image(min_mm, max_mm)


def render_probe(camera, probe: MouseProbe, scale: float, min_mm: int, max_mm: int, radius: int = 3):
    """
    Depth image for the probing example.

    While the probe is active the image is converted to BGR and the probed
    color pixel (display coordinates divided by scale) is marked at its
    depth-space position, when it has one.
    """
    gray = camera.depth_gray_image(min_mm, max_mm)
    if not probe.active:
        return gray

    image = depth_image.gray_to_bgr(gray)
    point = camera.color_point_to_depth(int(probe.x / scale), int(probe.y / scale))
    if point is not None:
        depth_image.mark_point(image, point, radius)
    return image


def render_registered(camera, scale: float, min_mm: int, max_mm: int):
    color_on_depth = camera.color_on_depth_image()
    depth_on_color = resize_for_display(camera.depth_on_color_gray_image(min_mm, max_mm), scale)
    return color_on_depth, depth_on_color


def poll_quit(wait_ms: int, quit_key: str) -> bool:
    key = cv2.waitKey(wait_ms) & 0xFF
    return key == ord(quit_key)


def run_loop(step, wait_ms: int = 10, quit_key: str = "q") -> int:
    iterations = 0
    try:
        while True:
            step()
            iterations += 1
            if poll_quit(wait_ms, quit_key):
                break
    except KeyboardInterrupt:
        print("\nInterrupted by user (Ctrl+C).")
    finally:
        cv2.destroyAllWindows()
    return iterations


def open_camera(camera):
    try:
        camera.open()
    except SensorError as e:
        log.error("%s", e)
        log.warning("no device, continuing with blank frames")
    return camera


def run_viewer(camera, build_step, display) -> int:
    """
    Open the camera, build the per-frame step and run it until the quit key.

    build_step(camera) is called after the camera was opened (or failed to
    open) so it can size windows from the real frame dimensions. Returns
    the number of loop iterations; SDK failures inside the loop are logged
    and end the loop.
    """
    open_camera(camera)
    try:
        step = build_step(camera)
        print(f"Press '{display.quit_key}' in an image window to exit.")
        return run_loop(step, display.wait_ms, display.quit_key)
    except SensorError as e:
        log.error("%s", e)
        return 0
    finally:
        camera.close()
