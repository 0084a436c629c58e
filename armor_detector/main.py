"""
Main entry point for the Armor Detection Pipeline

Runs one detection on an image file and reports the armors found.
"""

import argparse
import logging
import sys
from pathlib import Path

import cv2
import numpy as np

from armor_detector.pipeline import ArmorDetector
from armor_detector.utils.config_manager import ConfigManager
from armor_detector.utils.visualization import draw_results, stack_number_images


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Armor detection with number classification and depth localization"
    )

    parser.add_argument(
        "--image",
        type=str,
        required=True,
        help="Colour image to process"
    )

    parser.add_argument(
        "--depth",
        type=str,
        help="Aligned depth frame as a .npy array"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file"
    )

    parser.add_argument(
        "--model",
        type=str,
        help="ONNX number classifier (overrides classifier.model_path)"
    )

    parser.add_argument(
        "--labels",
        type=str,
        help="Label file (overrides classifier.label_path)"
    )

    parser.add_argument(
        "--no-classifier",
        action="store_true",
        help="Skip number classification"
    )

    parser.add_argument(
        "--output-dir",
        type=str,
        default="output",
        help="Output directory for debug images"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Write binary, annotated and number images"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    return parser


def main(argv=None):
    """Main entry point for the armor detector."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    # Load configuration
    try:
        config = ConfigManager(args.config)
        print(f"Loaded configuration from: {config.config_path}")
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading configuration: {e}")
        return 1

    # Load models
    try:
        detector = ArmorDetector.from_config(
            config,
            model_path=args.model,
            label_path=args.labels,
            use_classifier=not args.no_classifier
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading models: {e}")
        return 1

    # Load inputs
    image = cv2.imread(args.image)
    if image is None:
        print(f"Could not read image: {args.image}")
        return 1
    frame = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

    depth_image = None
    if args.depth:
        try:
            depth_image = np.load(args.depth)
        except (OSError, ValueError) as e:
            print(f"Could not read depth frame: {e}")
            return 1

    debug = args.debug or bool(config.get('debug', False))
    try:
        result = detector.detect(frame, depth_image, debug=debug)
    except ValueError as e:
        print(f"Detection failed: {e}")
        return 1

    print(f"Detected {len(result.armors)} armors in {result.latency_ms:.2f}ms")
    for armor in result.armors:
        cx, cy = armor.center
        line = f"  {armor.armor_type.value:5s} center=({cx:.1f}, {cy:.1f})"
        if armor.classification_result:
            line += f" number={armor.classification_result}"
        if armor.position is not None:
            p = armor.position
            line += f" position=({p.x:.3f}, {p.y:.3f}, {p.z:.3f})m"
        elif depth_image is not None:
            line += " position=unavailable"
        print(line)

    target = ArmorDetector.select_target(result.armors)
    if target is not None:
        print(f"Target: {target.number or target.armor_type.value} "
              f"({target.distance_to_center:.1f}px from center)")

    if debug:
        output_path = Path(args.output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        camera_center = None
        if detector.depth_processor is not None:
            intrinsics = detector.depth_processor.intrinsics
            camera_center = (intrinsics.cx, intrinsics.cy)

        annotated = draw_results(frame, result.lights, result.armors, camera_center, result.latency_ms)
        cv2.imwrite(str(output_path / "binary.png"), result.binary_image)
        cv2.imwrite(str(output_path / "result.png"), cv2.cvtColor(annotated, cv2.COLOR_RGB2BGR))

        numbers = stack_number_images(result.armors)
        if numbers is not None:
            cv2.imwrite(str(output_path / "numbers.png"), numbers)

        print(f"Debug images written to: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
