"""
Depth Processor

Back-projects image points with an aligned depth frame into camera-frame
3D positions using the pinhole model.
"""

import numpy as np
from typing import Optional, Sequence, Tuple
import logging
import math

from ..data_models import CameraIntrinsics, Point2f, Position


class DepthProcessor:
    """Pinhole back-projection with a fixed intrinsic matrix."""

    def __init__(self, camera_matrix: Sequence[float], depth_scale: float = 0.001):
        """
        Initialize depth processor.

        Args:
            camera_matrix: 3x3 intrinsic matrix or its 9-element row-major form
            depth_scale: Meters per unit for integer depth frames
        """
        self.logger = logging.getLogger(__name__)

        if depth_scale <= 0:
            raise ValueError("depth_scale must be positive")

        self.intrinsics = CameraIntrinsics.from_matrix(camera_matrix)
        self.depth_scale = float(depth_scale)

        self.logger.info(f"Depth processor initialized: fx={self.intrinsics.fx:.2f}, "
                         f"fy={self.intrinsics.fy:.2f}, cx={self.intrinsics.cx:.2f}, "
                         f"cy={self.intrinsics.cy:.2f}")

    def read_depth(self, depth_image: np.ndarray, image_point: Point2f) -> Optional[float]:
        """
        Look up the depth at the nearest pixel.

        Args:
            depth_image: Depth frame (H, W), float meters or integer units
            image_point: (x, y) pixel coordinates

        Returns:
            Depth in meters, or None when no valid reading exists
        """
        if depth_image.ndim != 2:
            raise ValueError(f"Depth frame must be single channel, got shape {depth_image.shape}")

        u = int(round(image_point[0]))
        v = int(round(image_point[1]))
        height, width = depth_image.shape
        if not (0 <= u < width and 0 <= v < height):
            return None

        raw = depth_image[v, u]
        if np.issubdtype(depth_image.dtype, np.integer):
            depth = float(raw) * self.depth_scale
        else:
            depth = float(raw)

        if not math.isfinite(depth) or depth <= 0:
            return None

        return depth

    def get_position(self, depth_image: np.ndarray, image_point: Point2f) -> Optional[Position]:
        """
        Get the 3D position of an image point.

        Args:
            depth_image: Depth frame aligned with the colour frame
            image_point: (x, y) pixel coordinates

        Returns:
            Position in the camera frame, or None if depth is missing
        """
        depth = self.read_depth(depth_image, image_point)
        if depth is None:
            self.logger.warning(f"No valid depth at ({image_point[0]:.1f}, {image_point[1]:.1f})")
            return None

        return self.back_project(image_point, depth)

    def back_project(self, image_point: Point2f, depth: float) -> Position:
        """Apply x = (u - cx) z / fx, y = (v - cy) z / fy."""
        k = self.intrinsics
        u, v = image_point
        return Position(
            x=(u - k.cx) * depth / k.fx,
            y=(v - k.cy) * depth / k.fy,
            z=depth
        )

    def project(self, position: Position) -> Tuple[float, float]:
        """
        Project a camera-frame point into pixel coordinates.

        Args:
            position: Point in front of the camera

        Returns:
            (u, v) pixel coordinates
        """
        if position.z <= 0:
            raise ValueError("Points must be in front of the camera (z > 0)")

        k = self.intrinsics
        return (k.fx * position.x / position.z + k.cx,
                k.fy * position.y / position.z + k.cy)

    def calculate_distance_to_center(self, image_point: Point2f) -> float:
        """Pixel distance between a point and the principal point."""
        return math.hypot(image_point[0] - self.intrinsics.cx,
                          image_point[1] - self.intrinsics.cy)
