"""
Image Preprocessor

Turns an RGB frame into a binary mask of bright, light-bar-like regions.
"""

import cv2
import numpy as np
import logging

from ..data_models import DetectColor
from ..utils.config_manager import PREPROCESS_METHODS


class ImagePreprocessor:
    """Binarizes RGB frames for light detection."""

    def __init__(self):
        """Initialize image preprocessor."""
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def validate_frame(frame: np.ndarray) -> None:
        """
        Check that a frame is an 8-bit, 3-channel image.

        Args:
            frame: Candidate RGB frame

        Raises:
            ValueError: If the frame has the wrong type or shape
        """
        if not isinstance(frame, np.ndarray):
            raise ValueError("Frame must be a numpy array")
        if frame.ndim != 3 or frame.shape[2] != 3:
            raise ValueError(f"Frame must have shape (H, W, 3), got {frame.shape}")
        if frame.dtype != np.uint8:
            raise ValueError(f"Frame must be uint8 (rgb8), got {frame.dtype}")
        if frame.shape[0] == 0 or frame.shape[1] == 0:
            raise ValueError("Frame must not be empty")

    def process(self,
                frame: np.ndarray,
                min_lightness: int,
                detect_color: DetectColor = DetectColor.RED,
                method: str = 'brightness') -> np.ndarray:
        """
        Compute the binary light mask of a frame.

        Args:
            frame: RGB frame (H, W, 3), uint8
            min_lightness: Binary threshold in [0, 255]
            detect_color: Target colour, used by the colour difference method
            method: 'brightness' or 'color_difference'

        Returns:
            Binary mask (H, W), uint8 with values 0 or 255
        """
        self.validate_frame(frame)
        if method not in PREPROCESS_METHODS:
            raise ValueError(f"Unknown preprocess method: {method}")

        if method == 'color_difference':
            binary = self.color_difference_mask(frame, min_lightness, detect_color)
        else:
            binary = self.brightness_mask(frame, min_lightness)

        self.logger.debug(f"{method} mask: {cv2.countNonZero(binary)} foreground pixels")

        return binary

    @staticmethod
    def brightness_mask(frame: np.ndarray, min_lightness: int) -> np.ndarray:
        """Threshold the grayscale image."""
        gray = cv2.cvtColor(frame, cv2.COLOR_RGB2GRAY)
        _, binary = cv2.threshold(gray, min_lightness, 255, cv2.THRESH_BINARY)
        return binary

    @staticmethod
    def color_difference_mask(frame: np.ndarray,
                              min_lightness: int,
                              detect_color: DetectColor) -> np.ndarray:
        """Threshold the target channel minus the opposing channel."""
        red, _, blue = cv2.split(frame)
        if detect_color == DetectColor.RED:
            difference = cv2.subtract(red, blue)
        else:
            difference = cv2.subtract(blue, red)
        _, binary = cv2.threshold(difference, min_lightness, 255, cv2.THRESH_BINARY)
        return binary
