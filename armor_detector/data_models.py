"""
Data Models for Armor Detection Pipeline

Defines all data structures used throughout the system.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Tuple, List, Optional, Sequence
import math

import cv2
import numpy as np


Point2f = Tuple[float, float]


class DetectColor(IntEnum):
    """Light colour classes (matches the ``detect_color`` parameter)."""
    RED = 0
    BLUE = 1


class ArmorType(Enum):
    """Armor size classes."""
    SMALL = "small"
    LARGE = "large"
    INVALID = "invalid"


@dataclass
class Light:
    """Light bar fitted from a rotated rectangle."""
    top: Point2f
    bottom: Point2f
    center: Point2f
    length: float
    width: float
    tilt_angle: float  # degrees from vertical, positive when top leans right
    color: DetectColor = DetectColor.RED

    @classmethod
    def from_rotated_rect(cls, rect, color: DetectColor = DetectColor.RED) -> "Light":
        """
        Build a light from a ``cv2.minAreaRect`` result.

        The corners are sorted by y; the upper pair gives ``top`` and the
        light width, the lower pair gives ``bottom``.
        """
        box = cv2.boxPoints(rect)
        box = box[np.argsort(box[:, 1], kind='stable')]

        top = (box[0] + box[1]) / 2.0
        bottom = (box[2] + box[3]) / 2.0
        width = float(np.linalg.norm(box[0] - box[1]))
        length = float(np.linalg.norm(top - bottom))
        center = (top + bottom) / 2.0

        tilt_angle = math.degrees(math.atan2(top[0] - bottom[0], bottom[1] - top[1]))
        tilt_angle = normalize_angle(tilt_angle)

        return cls(
            top=(float(top[0]), float(top[1])),
            bottom=(float(bottom[0]), float(bottom[1])),
            center=(float(center[0]), float(center[1])),
            length=length,
            width=width,
            tilt_angle=tilt_angle,
            color=color
        )

    @property
    def ratio(self) -> float:
        """Width over length."""
        return self.width / self.length if self.length > 0 else float('inf')


def normalize_angle(angle: float) -> float:
    """Wrap an angle in degrees into [-90, 90)."""
    return (angle + 90.0) % 180.0 - 90.0


@dataclass(frozen=True)
class Position:
    """3D point in the camera frame (meters)."""
    x: float
    y: float
    z: float

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)


@dataclass
class Armor:
    """Two paired lights and everything derived from them."""
    left_light: Light
    right_light: Light
    armor_type: ArmorType = ArmorType.INVALID
    number_image: Optional[np.ndarray] = None
    number: str = ""
    confidence: float = 0.0
    classification_result: str = ""
    position: Optional[Position] = None
    distance_to_center: Optional[float] = None

    def __post_init__(self):
        if self.left_light.center[0] > self.right_light.center[0]:
            self.left_light, self.right_light = self.right_light, self.left_light

    @property
    def center(self) -> Point2f:
        """Midpoint of the two light centers."""
        lx, ly = self.left_light.center
        rx, ry = self.right_light.center
        return ((lx + rx) / 2.0, (ly + ry) / 2.0)


@dataclass(frozen=True)
class CameraIntrinsics:
    """Pinhole camera intrinsics."""
    fx: float
    fy: float
    cx: float
    cy: float

    @classmethod
    def from_matrix(cls, camera_matrix: Sequence[float]) -> "CameraIntrinsics":
        """
        Build intrinsics from a 3x3 matrix or its 9-element row-major form.

        Args:
            camera_matrix: Intrinsic matrix K

        Returns:
            CameraIntrinsics with fx, fy, cx, cy taken from K
        """
        k = np.asarray(camera_matrix, dtype=float).reshape(-1)
        if k.size != 9:
            raise ValueError(f"Camera matrix must have 9 elements, got {k.size}")

        fx, fy, cx, cy = float(k[0]), float(k[4]), float(k[2]), float(k[5])
        if not (fx > 0 and fy > 0):
            raise ValueError("Camera matrix focal lengths must be positive")

        return cls(fx=fx, fy=fy, cx=cx, cy=cy)


@dataclass(frozen=True)
class LightParams:
    """Shape constraints for a single light."""
    min_ratio: float = 0.1
    max_ratio: float = 0.55
    max_angle: float = 40.0


@dataclass(frozen=True)
class ArmorParams:
    """Geometric constraints for pairing two lights."""
    min_light_ratio: float = 0.6
    min_small_center_distance: float = 0.8
    max_small_center_distance: float = 2.8
    min_large_center_distance: float = 3.2
    max_large_center_distance: float = 4.3
    max_angle: float = 35.0


@dataclass(frozen=True)
class DetectorParams:
    """Snapshot of every tunable parameter used while processing one frame."""
    min_lightness: int = 160
    detect_color: DetectColor = DetectColor.RED
    light: LightParams = field(default_factory=LightParams)
    armor: ArmorParams = field(default_factory=ArmorParams)
    classifier_threshold: float = 0.7
    preprocess_method: str = "brightness"
    version: int = 0


@dataclass
class DebugLight:
    """Shape measurements of a light candidate."""
    center_x: float
    ratio: float
    angle: float
    is_light: bool


@dataclass
class DebugArmor:
    """Pairing measurements of an armor candidate."""
    center_x: float
    type: str
    light_ratio: float
    center_distance: float
    angle: float


@dataclass
class DetectionResult:
    """Everything produced by one pipeline run."""
    armors: List[Armor]
    lights: List[Light] = field(default_factory=list)
    binary_image: Optional[np.ndarray] = None
    debug_lights: List[DebugLight] = field(default_factory=list)
    debug_armors: List[DebugArmor] = field(default_factory=list)
    params_version: int = 0
    latency_ms: float = 0.0
