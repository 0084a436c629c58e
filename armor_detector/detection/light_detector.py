"""
Light Detector

Extracts light bar candidates from the binary mask and filters them by shape.
"""

import cv2
import numpy as np
from typing import List, Optional
import logging

from ..data_models import DebugLight, DetectColor, Light, LightParams


class LightDetector:
    """Finds light bars in a binary mask and classifies their colour."""

    # Shorter contours are treated as noise
    MIN_CONTOUR_POINTS = 5

    def __init__(self):
        """Initialize light detector."""
        self.logger = logging.getLogger(__name__)

    def find_lights(self,
                    frame: np.ndarray,
                    binary: np.ndarray,
                    params: LightParams,
                    detect_color: Optional[DetectColor] = None,
                    debug_lights: Optional[List[DebugLight]] = None) -> List[Light]:
        """
        Find light bars in a binary mask.

        Args:
            frame: RGB frame used for colour sampling
            binary: Binary mask from the image preprocessor
            params: Light shape constraints
            detect_color: Keep only lights of this colour (None keeps both)
            debug_lights: Optional list receiving one record per shape test

        Returns:
            Lights in contour discovery order
        """
        if binary.shape[:2] != frame.shape[:2]:
            raise ValueError("Frame and binary mask must have same dimensions")

        contours, _ = cv2.findContours(binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        lights = []
        for contour in contours:
            if len(contour) < self.MIN_CONTOUR_POINTS:
                continue

            light = Light.from_rotated_rect(cv2.minAreaRect(contour))
            if light.length <= 0:
                continue

            if not self.is_light(light, params, debug_lights):
                continue

            color = self.detect_light_color(frame, contour)
            if color is None:
                continue
            light.color = color

            if detect_color is not None and color != detect_color:
                continue

            lights.append(light)

        self.logger.debug(f"Found {len(lights)} lights in {len(contours)} contours")

        return lights

    @staticmethod
    def is_light(light: Light,
                 params: LightParams,
                 debug_lights: Optional[List[DebugLight]] = None) -> bool:
        """
        Check light shape against ratio and tilt constraints.

        Args:
            light: Light candidate
            params: Light shape constraints
            debug_lights: Optional list receiving the measurement

        Returns:
            True if the candidate looks like a light bar
        """
        ratio = light.ratio
        ratio_ok = ratio <= 1.0 and params.min_ratio <= ratio <= params.max_ratio
        angle_ok = abs(light.tilt_angle) <= params.max_angle
        is_light = ratio_ok and angle_ok

        if debug_lights is not None:
            debug_lights.append(DebugLight(
                center_x=light.center[0],
                ratio=ratio,
                angle=light.tilt_angle,
                is_light=is_light
            ))

        return is_light

    @staticmethod
    def detect_light_color(frame: np.ndarray, contour: np.ndarray) -> Optional[DetectColor]:
        """
        Classify a light as red or blue from the pixels inside its contour.

        Args:
            frame: RGB frame
            contour: Light contour in frame coordinates

        Returns:
            DetectColor, or None if the contour leaves the frame
        """
        x, y, w, h = cv2.boundingRect(contour)
        height, width = frame.shape[:2]
        if x < 0 or y < 0 or w <= 0 or h <= 0 or x + w > width or y + h > height:
            return None

        roi = frame[y:y + h, x:x + w]
        mask = np.zeros((h, w), dtype=np.uint8)
        cv2.drawContours(mask, [contour], -1, 255, thickness=cv2.FILLED, offset=(-x, -y))
        inside = mask > 0

        sum_r = int(roi[..., 0][inside].sum(dtype=np.int64))
        sum_b = int(roi[..., 2][inside].sum(dtype=np.int64))

        return DetectColor.RED if sum_r > sum_b else DetectColor.BLUE
