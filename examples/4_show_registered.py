"""
Example 4: registered RGB-D images.

This script:
  - Opens the configured RGB-D camera with color and depth readers
  - Maps the color image onto the depth sensor's pixel grid
  - Maps the depth image onto the color camera's pixel grid and shows it as
    8-bit grayscale (resized); color pixels without a depth sample are black

Press 'q' in an OpenCV window to exit.

Use this example to:
  - See how the two sensors overlap
  - Spot registration errors at object edges
"""
import cv2
import hydra
from hydra.utils import instantiate
from omegaconf import DictConfig

from rgbd_viewer import render_registered, run_viewer

COLOR_ON_DEPTH_WINDOW = "color on depth"
DEPTH_ON_COLOR_WINDOW = "depth on color"


@hydra.main(version_base="1.3", config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    display = cfg.display
    camera = instantiate(cfg.camera)

    def build_step(camera):
        def step():
            camera.update_rgbd_frame()
            color_on_depth, depth_on_color = render_registered(
                camera, display.resize_scale, cfg.depth.min_mm, cfg.depth.max_mm
            )
            cv2.imshow(COLOR_ON_DEPTH_WINDOW, color_on_depth)
            cv2.imshow(DEPTH_ON_COLOR_WINDOW, depth_on_color)

        return step

    run_viewer(camera, build_step, display)


if __name__ == "__main__":
    main()
