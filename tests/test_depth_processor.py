"""
Tests for Depth Processor
"""

import math

import pytest
import numpy as np
from hypothesis import given, settings, strategies as st, HealthCheck

from armor_detector.data_models import Position
from armor_detector.localization.depth_processor import DepthProcessor


class TestDepthProcessor:
    """Test suite for depth processor."""

    @pytest.fixture
    def processor(self, sample_camera_matrix):
        """Fixture providing a depth processor instance."""
        return DepthProcessor(sample_camera_matrix)

    @pytest.fixture
    def depth_frame(self):
        """Fixture providing a flat 2 m float depth frame."""
        return np.full((480, 640), 2.0, dtype=np.float32)

    def test_processor_initialization(self, processor):
        """Test that intrinsics are read from the row-major matrix."""
        k = processor.intrinsics
        assert (k.fx, k.fy, k.cx, k.cy) == (600.0, 610.0, 320.0, 240.0)

    def test_accepts_3x3_matrix(self, sample_camera_matrix):
        """Test construction from a 3x3 numpy array."""
        processor = DepthProcessor(np.array(sample_camera_matrix).reshape(3, 3))
        assert processor.intrinsics.fy == 610.0

    @pytest.mark.parametrize("camera_matrix", [
        [],
        [600.0, 0.0, 320.0, 0.0, 610.0, 240.0, 0.0, 0.0],
        [0.0, 0.0, 320.0, 0.0, 610.0, 240.0, 0.0, 0.0, 1.0],
    ])
    def test_invalid_intrinsics(self, camera_matrix):
        """Test that missing or degenerate intrinsics are rejected."""
        with pytest.raises(ValueError, match="Camera matrix"):
            DepthProcessor(camera_matrix)

    def test_invalid_depth_scale(self, sample_camera_matrix):
        """Test that a non-positive depth scale is rejected."""
        with pytest.raises(ValueError, match="depth_scale"):
            DepthProcessor(sample_camera_matrix, depth_scale=0.0)

    def test_principal_point_on_axis(self, processor, depth_frame):
        """Test that the principal point back-projects onto the optical axis."""
        position = processor.get_position(depth_frame, (320.0, 240.0))
        assert position == Position(0.0, 0.0, 2.0)

    def test_back_projection_formula(self, processor, depth_frame):
        """Test x = (u - cx) z / fx and y = (v - cy) z / fy."""
        position = processor.get_position(depth_frame, (440.0, 179.0))

        assert position.x == pytest.approx((440.0 - 320.0) * 2.0 / 600.0)
        assert position.y == pytest.approx((179.0 - 240.0) * 2.0 / 610.0)
        assert position.z == pytest.approx(2.0)

    def test_nearest_pixel_lookup(self, processor):
        """Test that depth is read at the rounded pixel."""
        depth = np.zeros((480, 640), dtype=np.float32)
        depth[101, 51] = 1.5

        assert processor.read_depth(depth, (50.6, 100.7)) == pytest.approx(1.5)
        assert processor.read_depth(depth, (50.4, 100.7)) is None

    def test_zero_depth_is_unavailable(self, processor):
        """Test that a zero reading is not returned as the origin."""
        depth = np.zeros((480, 640), dtype=np.float32)
        assert processor.get_position(depth, (320.0, 240.0)) is None

    @pytest.mark.parametrize("value", [np.nan, np.inf, -1.0])
    def test_invalid_depth_is_unavailable(self, processor, depth_frame, value):
        """Test that NaN, infinite and negative readings are rejected."""
        depth_frame[240, 320] = value
        assert processor.get_position(depth_frame, (320.0, 240.0)) is None

    @pytest.mark.parametrize("point", [(-1.0, 10.0), (640.0, 10.0), (10.0, 480.0), (10.0, -0.6)])
    def test_point_outside_frame(self, processor, depth_frame, point):
        """Test that points outside the depth frame have no position."""
        assert processor.get_position(depth_frame, point) is None

    def test_integer_depth_scaled(self, processor):
        """Test that uint16 millimeter frames are converted to meters."""
        depth = np.full((480, 640), 1500, dtype=np.uint16)
        position = processor.get_position(depth, (320.0, 240.0))
        assert position.z == pytest.approx(1.5)

    def test_multichannel_depth_rejected(self, processor):
        """Test error handling for a depth frame with channels."""
        with pytest.raises(ValueError, match="single channel"):
            processor.get_position(np.ones((480, 640, 3), dtype=np.float32), (1.0, 1.0))

    def test_distance_to_center(self, processor):
        """Test the pixel distance to the principal point."""
        assert processor.calculate_distance_to_center((320.0, 240.0)) == 0.0
        assert processor.calculate_distance_to_center((323.0, 244.0)) == pytest.approx(5.0)

    def test_project_behind_camera(self, processor):
        """Test that points behind the camera cannot be projected."""
        with pytest.raises(ValueError, match="front of the camera"):
            processor.project(Position(0.0, 0.0, -1.0))

    @pytest.mark.property
    @given(
        x=st.floats(min_value=-3.0, max_value=3.0),
        y=st.floats(min_value=-2.0, max_value=2.0),
        z=st.floats(min_value=0.2, max_value=20.0),
        fx=st.floats(min_value=100.0, max_value=2000.0),
        fy=st.floats(min_value=100.0, max_value=2000.0),
        cx=st.floats(min_value=0.0, max_value=1280.0),
        cy=st.floats(min_value=0.0, max_value=1024.0)
    )
    @settings(max_examples=200, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_projection_round_trip(self, x, y, z, fx, fy, cx, cy):
        """
        Test that projecting a 3D point and back-projecting it with its depth
        reproduces the point.
        """
        processor = DepthProcessor([fx, 0.0, cx, 0.0, fy, cy, 0.0, 0.0, 1.0])

        u = fx * x / z + cx
        v = fy * y / z + cy
        position = processor.back_project((u, v), z)

        assert math.isclose(position.x, x, rel_tol=1e-9, abs_tol=1e-9)
        assert math.isclose(position.y, y, rel_tol=1e-9, abs_tol=1e-9)
        assert position.z == z
        assert processor.project(position) == pytest.approx((u, v))
