"""
Example 3: RGB-D viewer with point probing.

This script:
  - Opens the configured RGB-D camera with color and depth readers
  - Shows the color image (resized) and the 8-bit depth image
  - While the left mouse button is held in the color window, maps the
    pointed color pixel into depth space and marks it in the depth window

Press 'q' in an OpenCV window to exit.

Use this example to:
  - Check that the depth <-> color coordinate mapping lines up
  - Inspect where a color pixel lands on the depth sensor
"""
import cv2
import hydra
from hydra.utils import instantiate
from omegaconf import DictConfig

from rgbd_viewer import MouseProbe, create_window, render_color, render_probe, run_viewer


@hydra.main(version_base="1.3", config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    display = cfg.display
    scale = display.resize_scale
    camera = instantiate(cfg.camera)

    def build_step(camera):
        probe = MouseProbe(int(camera.color_width * scale), int(camera.color_height * scale))
        create_window(display.color_window, probe)

        def step():
            camera.update_rgbd_frame()
            cv2.imshow(display.color_window, render_color(camera, scale))
            depth = render_probe(
                camera,
                probe,
                scale,
                cfg.depth.min_mm,
                cfg.depth.max_mm,
                display.marker_radius,
            )
            cv2.imshow(display.depth_window, depth)

        return step

    run_viewer(camera, build_step, display)


if __name__ == "__main__":
    main()
