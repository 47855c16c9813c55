"""
Example 2: depth stream viewer.

This script:
  - Opens the configured RGB-D camera with only the depth reader enabled
  - Polls the latest depth frame every loop iteration
  - Rescales depth between depth.min_mm and depth.max_mm to 8-bit grayscale
    (closer than min is black, min..max is a linear ramp, max and beyond is white)

Press 'q' in the OpenCV window to exit.

Use this example to:
  - Check the depth stream and pick a useful min/max range, e.g.
    `python 2_show_depth.py depth.min_mm=500 depth.max_mm=1500`
"""
import cv2
import hydra
from hydra.utils import instantiate
from omegaconf import DictConfig

from rgbd_viewer import render_depth, run_viewer


@hydra.main(version_base="1.3", config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    display = cfg.display
    camera = instantiate(cfg.camera, color=False, depth=True)

    def build_step(camera):
        def step():
            camera.update_depth_frame()
            cv2.imshow(display.depth_window, render_depth(camera, cfg.depth.min_mm, cfg.depth.max_mm))

        return step

    run_viewer(camera, build_step, display)


if __name__ == "__main__":
    main()
