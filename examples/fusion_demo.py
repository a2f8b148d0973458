#!/usr/bin/env python3
"""Demo script for the visual-inertial fusion driver on a EuRoC sequence.

Usage:
    uv run python examples/fusion_demo.py [mav0_path] [--no-viewer]
"""

import logging
import sys
from collections import Counter

import numpy as np

from vio_fusion import EurocReader, FusionConfig, FusionDriver, FusionStatus
from vio_fusion.logging_config import setup_logging

logger = logging.getLogger("fusion_demo")


def main() -> None:
    """Run the fusion demo."""
    # Configuration
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    dataset_path = args[0] if args else "data/euroc/MH_01_easy/mav0"
    use_viewer = "--no-viewer" not in sys.argv
    max_samples = None  # Set to int to limit samples

    setup_logging("INFO")
    config = FusionConfig.from_yaml("config/fusion.yaml")

    reader = EurocReader(dataset_path)
    visualizer = None
    if use_viewer:
        from vio_fusion.visualization import RerunVisualizer

        visualizer = RerunVisualizer("python-vio-fusion")

    print(f"Processing {reader.num_images} stereo pairs and {reader.num_imu} IMU samples...")
    print()
    print(f"{'Sample':>7} {'Status':^20} {'Time':>8} | {'Position'}")
    print("-" * 80)

    statuses: Counter = Counter()
    total_distance = 0.0
    timing_total = 0.0

    with FusionDriver(config) as driver:
        for i, data in enumerate(reader):
            if max_samples is not None and i >= max_samples:
                break

            result = driver.process(data)
            statuses[result.status] += 1
            timing_total += result.timing_ms

            if result.status == FusionStatus.OK:
                total_distance += float(np.linalg.norm(result.transform.translation))

            if visualizer is not None and data.has_image:
                visualizer.set_time(data.stamp)
                visualizer.log_image(data.image)
                visualizer.log_result(result, driver.pose)

            if data.has_image:
                pos = driver.pose.position
                print(
                    f"{i:>7} {result.status.value:^20} {result.timing_ms:>6.1f}ms | "
                    f"[{pos[0]:>7.3f}, {pos[1]:>7.3f}, {pos[2]:>7.3f}]"
                )

        print()
        print("=" * 80)
        print(f"Images processed: {driver.images_processed}")
        print(f"Poses reported:   {driver.frames_processed}")
        print(f"Total distance:   {total_distance:.2f} m")
        print(f"Mean call time:   {timing_total / max(sum(statuses.values()), 1):.2f} ms")
        for status, count in sorted(statuses.items(), key=lambda item: item[0].value):
            print(f"  {status.value:<20} {count}")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Interrupted")
