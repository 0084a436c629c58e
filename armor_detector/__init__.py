"""
Armor Detection Pipeline for Robotic Targeting

Locates armor markers (pairs of light bars) in camera frames, classifies the
number printed between the lights, and localizes the armor in 3D from an
aligned depth frame.

This package implements:
- Brightness and colour-difference binarization of RGB frames
- Rotated-rectangle light bar extraction with shape and colour filtering
- Geometric light pairing into small and large armors
- ONNX number classification on perspective-normalized crops
- Pinhole back-projection of armor centers with aligned depth
"""

__version__ = "1.0.0"
__author__ = "Armor Detector Team"

from .preprocessing import ImagePreprocessor
from .detection import LightDetector, ArmorMatcher
from .classification import NumberClassifier
from .localization import DepthProcessor
from .pipeline import ArmorDetector
from .data_models import (
    DetectColor, ArmorType, Light, Armor, Position, CameraIntrinsics,
    LightParams, ArmorParams, DetectorParams, DetectionResult
)

__all__ = [
    # Pipeline stages
    'ImagePreprocessor', 'LightDetector', 'ArmorMatcher',
    'NumberClassifier', 'DepthProcessor', 'ArmorDetector',
    # Data Models
    'DetectColor', 'ArmorType', 'Light', 'Armor', 'Position', 'CameraIntrinsics',
    'LightParams', 'ArmorParams', 'DetectorParams', 'DetectionResult'
]
