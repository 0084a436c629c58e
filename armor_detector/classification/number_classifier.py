"""
Number Classifier

Crops the number pattern between two lights and classifies it with an
ONNX model run through OpenCV DNN.
"""

import cv2
import numpy as np
from scipy.special import softmax
from pathlib import Path
from typing import List, Sequence, Tuple
import logging

from ..data_models import Armor, ArmorType


class NumberClassifier:
    """Extracts and classifies armor numbers."""

    # Warp geometry: lights are mapped onto a 28 pixel high canvas where
    # each light occupies LIGHT_LENGTH rows
    LIGHT_LENGTH = 12
    WARP_HEIGHT = 28
    SMALL_ARMOR_WIDTH = 32
    LARGE_ARMOR_WIDTH = 54
    ROI_SIZE = (20, 28)  # (width, height)

    # Labels that cannot appear on an armor of the given size
    LARGE_ARMOR_MISMATCH = ('outpost', '2', 'guard')
    SMALL_ARMOR_MISMATCH = ('1', 'base')

    def __init__(self,
                 net,
                 class_names: Sequence[str],
                 ignore_classes: Sequence[str] = ('negative',)):
        """
        Initialize number classifier.

        Args:
            net: Network exposing the cv2.dnn.Net interface (setInput/forward)
            class_names: Label for each network output, in output order
            ignore_classes: Labels that reject an armor
        """
        self.logger = logging.getLogger(__name__)

        if net is None:
            raise ValueError("Number classifier requires a network")
        if len(class_names) == 0:
            raise ValueError("Number classifier requires at least one label")

        self.net = net
        self.class_names = tuple(class_names)
        self.ignore_classes = frozenset(ignore_classes)

        # The model must emit one score per label
        roi_width, roi_height = self.ROI_SIZE
        try:
            outputs = self._forward(np.zeros((roi_height, roi_width), dtype=np.uint8))
        except cv2.error as e:
            raise ValueError(f"Error running classifier model: {e}")
        if outputs.size != len(self.class_names):
            raise ValueError(f"Model produced {outputs.size} outputs for {len(self.class_names)} labels")

        self.logger.info(f"Number classifier initialized: {len(self.class_names)} classes, "
                         f"ignoring {sorted(self.ignore_classes)}")

    @classmethod
    def from_files(cls,
                   model_path: str,
                   label_path: str,
                   ignore_classes: Sequence[str] = ('negative',)) -> "NumberClassifier":
        """
        Load an ONNX model and its label table.

        Args:
            model_path: Path to the ONNX model
            label_path: Text file with one label per line
            ignore_classes: Labels that reject an armor

        Returns:
            NumberClassifier instance
        """
        if not model_path or not Path(model_path).is_file():
            raise FileNotFoundError(f"Classifier model not found: {model_path}")

        try:
            net = cv2.dnn.readNetFromONNX(str(model_path))
        except cv2.error as e:
            raise ValueError(f"Error loading classifier model {model_path}: {e}")

        return cls(net, load_labels(label_path), ignore_classes)

    def extract_numbers(self, frame: np.ndarray, armors: List[Armor]) -> None:
        """
        Crop and binarize the number pattern of every armor.

        Args:
            frame: RGB frame
            armors: Armors to fill in ``number_image`` for
        """
        top_light_y = (self.WARP_HEIGHT - self.LIGHT_LENGTH) / 2 - 1
        bottom_light_y = top_light_y + self.LIGHT_LENGTH

        for armor in armors:
            warp_width = (self.SMALL_ARMOR_WIDTH if armor.armor_type == ArmorType.SMALL
                          else self.LARGE_ARMOR_WIDTH)

            lights_vertices = np.array([
                armor.left_light.bottom,
                armor.left_light.top,
                armor.right_light.top,
                armor.right_light.bottom
            ], dtype=np.float32)
            target_vertices = np.array([
                [0, bottom_light_y],
                [0, top_light_y],
                [warp_width - 1, top_light_y],
                [warp_width - 1, bottom_light_y]
            ], dtype=np.float32)

            rotation_matrix = cv2.getPerspectiveTransform(lights_vertices, target_vertices)
            number_image = cv2.warpPerspective(frame, rotation_matrix, (warp_width, self.WARP_HEIGHT))

            # Keep the center of the warped armor
            roi_width, roi_height = self.ROI_SIZE
            x0 = (warp_width - roi_width) // 2
            number_image = number_image[0:roi_height, x0:x0 + roi_width]

            number_image = cv2.cvtColor(number_image, cv2.COLOR_RGB2GRAY)
            _, number_image = cv2.threshold(number_image, 0, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU)

            armor.number_image = number_image

    def predict(self, number_image: np.ndarray) -> Tuple[str, float]:
        """
        Run the network on one number image.

        Args:
            number_image: Grayscale (28, 20) image

        Returns:
            Tuple of (label, confidence)
        """
        probabilities = softmax(self._forward(number_image))
        label_id = int(np.argmax(probabilities))

        return self.class_names[label_id], float(probabilities[label_id])

    def _forward(self, number_image: np.ndarray) -> np.ndarray:
        """Run the network and return the raw output scores."""
        image = number_image.astype(np.float32) / 255.0
        blob = cv2.dnn.blobFromImage(image)

        self.net.setInput(blob)
        return np.asarray(self.net.forward(), dtype=np.float64).reshape(-1)

    def classify(self, armors: List[Armor], threshold: float) -> List[Armor]:
        """
        Classify armors and drop the ones that fail.

        Args:
            armors: Armors with ``number_image`` filled in
            threshold: Minimum confidence to keep an armor

        Returns:
            Surviving armors, in input order
        """
        kept = []
        for armor in armors:
            if armor.number_image is None:
                continue

            armor.number, armor.confidence = self.predict(armor.number_image)
            armor.classification_result = f"{armor.number}: {armor.confidence * 100.0:.1f}%"

            if self.is_rejected(armor, threshold):
                self.logger.debug(f"Rejected armor {armor.classification_result} ({armor.armor_type.value})")
                continue
            kept.append(armor)

        return kept

    def is_rejected(self, armor: Armor, threshold: float) -> bool:
        """Check confidence, ignored labels, and label/size consistency."""
        if armor.confidence < threshold:
            return True
        if armor.number in self.ignore_classes:
            return True

        if armor.armor_type == ArmorType.LARGE:
            return armor.number in self.LARGE_ARMOR_MISMATCH
        if armor.armor_type == ArmorType.SMALL:
            return armor.number in self.SMALL_ARMOR_MISMATCH
        return False


def load_labels(label_path: str) -> List[str]:
    """
    Read a label table with one label per line.

    Args:
        label_path: Path to the label file

    Returns:
        Labels in file order
    """
    try:
        with open(label_path, 'r') as file:
            labels = [line.strip() for line in file if line.strip()]
    except FileNotFoundError:
        raise FileNotFoundError(f"Label file not found: {label_path}")

    if not labels:
        raise ValueError(f"Label file is empty: {label_path}")

    return labels
