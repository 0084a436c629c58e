"""
Armor Detection Pipeline

Runs preprocessing, light detection, armor matching, number classification
and depth localization for one frame.
"""

import numpy as np
from typing import List, Optional
import logging
import time

from .classification.number_classifier import NumberClassifier
from .data_models import Armor, DebugArmor, DebugLight, DetectionResult
from .detection.armor_matcher import ArmorMatcher
from .detection.light_detector import LightDetector
from .localization.depth_processor import DepthProcessor
from .preprocessing.image_preprocessor import ImagePreprocessor
from .utils.config_manager import ConfigManager


class ArmorDetector:
    """Per-frame armor detection pipeline."""

    def __init__(self,
                 config_manager: Optional[ConfigManager] = None,
                 classifier: Optional[NumberClassifier] = None,
                 depth_processor: Optional[DepthProcessor] = None):
        """
        Initialize armor detector.

        Args:
            config_manager: Configuration manager instance
            classifier: Number classifier; None skips classification
            depth_processor: Depth processor; None skips localization
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        self.preprocessor = ImagePreprocessor()
        self.light_detector = LightDetector()
        self.armor_matcher = ArmorMatcher()
        self.classifier = classifier
        self.depth_processor = depth_processor

        self.logger.info(f"Armor detector initialized: classifier={'on' if classifier else 'off'}, "
                         f"depth={'on' if depth_processor else 'off'}")

    @classmethod
    def from_config(cls,
                    config_manager: Optional[ConfigManager] = None,
                    model_path: Optional[str] = None,
                    label_path: Optional[str] = None,
                    use_classifier: bool = True) -> "ArmorDetector":
        """
        Build a detector with the classifier and depth processor described
        by the configuration.

        Args:
            config_manager: Configuration manager instance
            model_path: ONNX model, overriding classifier.model_path
            label_path: Label file, overriding classifier.label_path
            use_classifier: Load the number classifier

        Returns:
            ArmorDetector instance
        """
        config = config_manager or ConfigManager()

        classifier = None
        if use_classifier:
            classifier = NumberClassifier.from_files(
                model_path or config.resolve_path('classifier.model_path'),
                label_path or config.resolve_path('classifier.label_path'),
                config.get_classifier_params().get('ignore_classes', ['negative'])
            )

        depth_processor = None
        camera_matrix = config.get('camera.camera_matrix')
        if camera_matrix is not None:
            depth_processor = DepthProcessor(camera_matrix, config.get('depth.scale', 0.001))

        return cls(config, classifier, depth_processor)

    def detect(self,
               frame: np.ndarray,
               depth_image: Optional[np.ndarray] = None,
               debug: bool = False) -> DetectionResult:
        """
        Detect armors in one frame.

        Args:
            frame: RGB frame (H, W, 3), uint8
            depth_image: Optional depth frame aligned with ``frame``
            debug: Collect debug measurements and the binary image

        Returns:
            DetectionResult with the surviving armors
        """
        start_time = time.perf_counter()
        params = self.config.snapshot()

        ImagePreprocessor.validate_frame(frame)
        if depth_image is not None:
            if self.depth_processor is None:
                raise ValueError("Camera intrinsics are not set; cannot use depth frame")
            if depth_image.shape[:2] != frame.shape[:2]:
                raise ValueError("Frame and depth image must have same dimensions")

        debug_lights: Optional[List[DebugLight]] = [] if debug else None
        debug_armors: Optional[List[DebugArmor]] = [] if debug else None

        binary = self.preprocessor.process(frame, params.min_lightness, params.detect_color,
                                           params.preprocess_method)
        lights = self.light_detector.find_lights(frame, binary, params.light,
                                                 params.detect_color, debug_lights)
        armors = self.armor_matcher.match_lights(lights, params.armor,
                                                 params.detect_color, debug_armors)

        if armors and self.classifier is not None:
            self.classifier.extract_numbers(frame, armors)
            armors = self.classifier.classify(armors, params.classifier_threshold)

        if self.depth_processor is not None:
            self._localize(armors, depth_image)

        latency_ms = (time.perf_counter() - start_time) * 1000.0
        self.logger.debug(f"detect used {latency_ms:.2f}ms: {len(lights)} lights, "
                          f"{len(armors)} armors (params v{params.version})")

        result = DetectionResult(armors=armors, params_version=params.version, latency_ms=latency_ms)
        if debug:
            result.lights = lights
            result.binary_image = binary
            result.debug_lights = sorted(debug_lights, key=lambda l: l.center_x)
            result.debug_armors = sorted(debug_armors, key=lambda a: a.center_x)

        return result

    def _localize(self, armors: List[Armor], depth_image: Optional[np.ndarray]) -> None:
        """Fill in distance to image center and, with depth, 3D position."""
        for armor in armors:
            armor.distance_to_center = self.depth_processor.calculate_distance_to_center(armor.center)
            if depth_image is not None:
                armor.position = self.depth_processor.get_position(depth_image, armor.center)

    @staticmethod
    def select_target(armors: List[Armor]) -> Optional[Armor]:
        """
        Pick the armor closest to the image center.

        Args:
            armors: Localized armors

        Returns:
            Armor with the smallest distance to center, or None
        """
        candidates = [a for a in armors if a.distance_to_center is not None]
        if not candidates:
            return None
        return min(candidates, key=lambda a: a.distance_to_center)
