"""
Pytest configuration and fixtures for armor detector tests.
"""

import pytest
import numpy as np
import cv2
from armor_detector.data_models import DetectColor, Light
from armor_detector.utils.config_manager import ConfigManager


FRAME_HEIGHT, FRAME_WIDTH = 480, 640

# RGB colours bright enough to pass the default min_lightness of 160
RED_LIGHT = (255, 200, 200)
BLUE_LIGHT = (200, 200, 255)

LABELS = ['1', '2', '3', '4', '5', 'outpost', 'guard', 'base', 'negative']


class FakeNet:
    """Stand-in for cv2.dnn.Net returning logits keyed by input intensity."""

    def __init__(self, logits_by_value=None, default_logits=None):
        self.logits_by_value = logits_by_value or {}
        self.default_logits = default_logits
        self.blob = None
        self.calls = 0

    def setInput(self, blob):
        self.blob = blob

    def forward(self):
        self.calls += 1
        value = int(round(float(self.blob.reshape(-1)[0]) * 255))
        logits = self.logits_by_value.get(value, self.default_logits)
        return np.array([logits], dtype=np.float32)


def one_hot_logits(label, strength=10.0):
    """Logits strongly favouring one label."""
    logits = [0.0] * len(LABELS)
    logits[LABELS.index(label)] = strength
    return logits


@pytest.fixture
def config_manager():
    """Fixture providing a configuration manager instance."""
    return ConfigManager()


@pytest.fixture
def sample_camera_matrix():
    """Fixture providing a row-major 3x3 intrinsic matrix."""
    return [600.0, 0.0, 320.0,
            0.0, 610.0, 240.0,
            0.0, 0.0, 1.0]


@pytest.fixture
def black_frame():
    """Fixture providing an all-black RGB frame."""
    return np.zeros((FRAME_HEIGHT, FRAME_WIDTH, 3), dtype=np.uint8)


@pytest.fixture
def draw_bar():
    """Fixture providing a function that draws a filled elliptical light bar."""
    def _draw(frame, center, color=RED_LIGHT, half_width=4, half_length=20, angle=0.0):
        cv2.ellipse(frame, center, (half_width, half_length), angle, 0, 360, color, -1)
        return frame
    return _draw


@pytest.fixture
def armor_frame(black_frame, draw_bar):
    """Fixture providing a frame with two red bars forming a small armor."""
    draw_bar(black_frame, (200, 240))
    draw_bar(black_frame, (280, 240))
    return black_frame


@pytest.fixture
def make_light():
    """Fixture providing a factory for upright or tilted lights."""
    def _make(cx, cy, length=40.0, width=8.0, tilt=0.0, color=DetectColor.RED):
        rad = np.deg2rad(tilt)
        dx = np.sin(rad) * length / 2.0
        dy = np.cos(rad) * length / 2.0
        return Light(
            top=(cx + dx, cy - dy),
            bottom=(cx - dx, cy + dy),
            center=(float(cx), float(cy)),
            length=length,
            width=width,
            tilt_angle=tilt,
            color=color
        )
    return _make


@pytest.fixture
def fake_net():
    """Fixture providing a network that always predicts '3'."""
    return FakeNet(default_logits=one_hot_logits('3'))


@pytest.fixture
def labels():
    """Fixture providing the classifier label table."""
    return list(LABELS)


@pytest.fixture
def net_factory():
    """Fixture providing the FakeNet class."""
    return FakeNet


@pytest.fixture
def logits_for():
    """Fixture providing a function that builds one-hot-ish logits."""
    return one_hot_logits
