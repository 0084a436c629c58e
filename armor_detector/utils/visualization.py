"""
Debug Visualization

Draws detection results and stacks number crops for offline tuning.
"""

import cv2
import numpy as np
from typing import List, Optional, Tuple

from ..data_models import Armor, DetectColor, Light

NUMBER_IMAGE_SIZE = (20, 28)


def _pt(point) -> Tuple[int, int]:
    return int(round(point[0])), int(round(point[1]))


def draw_results(image: np.ndarray,
                 lights: List[Light],
                 armors: List[Armor],
                 camera_center: Optional[Tuple[float, float]] = None,
                 latency_ms: Optional[float] = None) -> np.ndarray:
    """
    Draw lights, armors and classification labels on a copy of an RGB frame.

    Args:
        image: RGB frame
        lights: Lights to outline
        armors: Armors to draw
        camera_center: Principal point to mark, if known
        latency_ms: Processing time to print, if known

    Returns:
        Annotated RGB image
    """
    canvas = image.copy()

    for light in lights:
        color = (255, 255, 0) if light.color == DetectColor.RED else (255, 0, 255)
        cv2.line(canvas, _pt(light.top), _pt(light.bottom), color, 2)

    for armor in armors:
        cv2.line(canvas, _pt(armor.left_light.top), _pt(armor.right_light.bottom), (0, 255, 0), 2)
        cv2.line(canvas, _pt(armor.left_light.bottom), _pt(armor.right_light.top), (0, 255, 0), 2)

    for armor in armors:
        cv2.putText(canvas, armor.classification_result, _pt(armor.left_light.top),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 255, 255), 2)

    if camera_center is not None:
        cv2.circle(canvas, _pt(camera_center), 5, (255, 0, 0), 2)

    if latency_ms is not None:
        cv2.putText(canvas, f"Latency: {latency_ms:.2f}ms", (10, 30),
                    cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 255, 0), 2)

    return canvas


def stack_number_images(armors: List[Armor]) -> Optional[np.ndarray]:
    """
    Stack the number crops of all armors vertically.

    Args:
        armors: Armors with ``number_image`` filled in

    Returns:
        Single grayscale image, or None if no armor has a crop
    """
    number_images = [
        cv2.resize(armor.number_image, NUMBER_IMAGE_SIZE)
        for armor in armors if armor.number_image is not None
    ]
    if not number_images:
        return None
    return cv2.vconcat(number_images)
