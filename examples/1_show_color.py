"""
Example 1: color stream viewer.

This script:
  - Opens the configured RGB-D camera with only the color reader enabled
  - Polls the latest color frame every loop iteration
  - Shows it, resized by display.resize_scale, in an OpenCV window

Press 'q' in the OpenCV window to exit.

Use this example to:
  - Verify that the camera is detected and the color stream runs
  - Try another backend, e.g. `python 1_show_color.py camera=realsense`
"""
import cv2
import hydra
from hydra.utils import instantiate
from omegaconf import DictConfig

from rgbd_viewer import render_color, run_viewer


@hydra.main(version_base="1.3", config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    display = cfg.display
    camera = instantiate(cfg.camera, color=True, depth=False)

    def build_step(camera):
        def step():
            camera.update_color_frame()
            cv2.imshow(display.color_window, render_color(camera, display.resize_scale))

        return step

    run_viewer(camera, build_step, display)


if __name__ == "__main__":
    main()
