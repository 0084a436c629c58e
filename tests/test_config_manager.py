"""
Tests for Configuration Manager
"""

import threading

import pytest
import yaml

from armor_detector.data_models import DetectColor, DetectorParams
from armor_detector.utils.config_manager import ConfigManager


class TestConfigManager:
    """Test suite for configuration manager."""

    def test_default_config_loads(self, config_manager):
        """Test that the default configuration matches the documented defaults."""
        assert config_manager.get('detect_color') == 0
        assert config_manager.get('armor.min_light_ratio') == 0.6
        assert config_manager.get('classifier.threshold') == 0.7
        assert len(config_manager.get('camera.camera_matrix')) == 9

    def test_missing_key_returns_default(self, config_manager):
        """Test dot-notation lookup of unknown keys."""
        assert config_manager.get('light.unknown', 42) == 42
        assert config_manager.get('nothing.here') is None

    def test_missing_file(self, tmp_path):
        """Test error handling for a missing configuration file."""
        with pytest.raises(FileNotFoundError, match="not found"):
            ConfigManager(str(tmp_path / "missing.yaml"))

    def test_invalid_file_contents(self, tmp_path):
        """Test that invalid values in a file are rejected at load time."""
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({'light': {'min_ratio': 0.6, 'max_ratio': 0.5}}))

        with pytest.raises(ValueError, match="min_ratio"):
            ConfigManager(str(path))

    @pytest.mark.parametrize("key, value", [
        ('min_lightness', 300),
        ('detect_color', 2),
        ('light.max_angle', 0.0),
        ('armor.min_small_center_distance', 5.0),
        ('classifier.threshold', 1.5),
        ('preprocess.method', 'hsv'),
        ('camera.camera_matrix', [1.0, 2.0]),
        ('min_lightness.x', 1),
        ('light', 5),
        ('light.max_angle', None),
    ])
    def test_invalid_update_rejected(self, config_manager, key, value):
        """Test that an invalid update raises and leaves the old value."""
        old_value = config_manager.get(key)
        old_version = config_manager.version

        with pytest.raises(ValueError):
            config_manager.set(key, value)

        assert config_manager.get(key) == old_value
        assert config_manager.version == old_version

    def test_empty_section_uses_defaults(self, tmp_path):
        """Test that a section left empty in the file reads as defaults."""
        path = tmp_path / "empty_sections.yaml"
        path.write_text("min_lightness: 150\nlight:\narmor:\n")

        config = ConfigManager(str(path))
        params = config.snapshot()

        assert params.min_lightness == 150
        assert params.light.max_ratio == 0.55
        assert params.armor.max_angle == 35.0
        assert config.get_preprocess_params() == {}

        config.set('light.max_angle', 30.0)
        assert config.snapshot().light.max_angle == 30.0

    def test_preprocess_method_in_snapshot(self, config_manager):
        """Test that the binarization method is part of the frame snapshot."""
        assert config_manager.snapshot().preprocess_method == 'brightness'

        config_manager.set('preprocess.method', 'color_difference')
        assert config_manager.snapshot().preprocess_method == 'color_difference'

    def test_update_is_atomic(self, config_manager):
        """Test that several keys change together and bump the version once."""
        config_manager.update({'light.min_ratio': 0.2, 'light.max_ratio': 0.4})

        assert config_manager.get('light.min_ratio') == 0.2
        assert config_manager.get('light.max_ratio') == 0.4
        assert config_manager.version == 1

    def test_update_that_is_only_valid_together(self, config_manager):
        """Test that validation runs on the combined update."""
        # Raising the minimum alone would invert the small band
        config_manager.update({
            'armor.min_small_center_distance': 3.0,
            'armor.max_small_center_distance': 3.1
        })
        assert config_manager.get('armor.min_small_center_distance') == 3.0

    def test_snapshot(self, config_manager):
        """Test snapshot contents and immutability."""
        config_manager.set('detect_color', 1)
        params = config_manager.snapshot()

        assert isinstance(params, DetectorParams)
        assert params.detect_color == DetectColor.BLUE
        assert params.min_lightness == 160
        assert params.light.max_angle == 40.0
        assert params.armor.max_large_center_distance == 4.3
        assert params.classifier_threshold == 0.7
        assert params.version == 1

        with pytest.raises(AttributeError):
            params.min_lightness = 10

    def test_snapshot_not_affected_by_later_updates(self, config_manager):
        """Test that a snapshot keeps its values after the config changes."""
        params = config_manager.snapshot()
        config_manager.set('classifier.threshold', 0.9)

        assert params.classifier_threshold == 0.7
        assert config_manager.snapshot().classifier_threshold == 0.9

    def test_concurrent_updates_never_mix(self, config_manager):
        """Test that snapshots never combine bounds from different updates."""
        pairs = [(0.1 + 0.01 * i, 0.5 + 0.01 * i) for i in range(20)]
        valid = set(pairs) | {(0.1, 0.55)}
        stop = threading.Event()

        def writer():
            while not stop.is_set():
                for low, high in pairs:
                    config_manager.update({'light.min_ratio': low, 'light.max_ratio': high})

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            for _ in range(2000):
                params = config_manager.snapshot()
                assert (params.light.min_ratio, params.light.max_ratio) in valid
        finally:
            stop.set()
            thread.join()

    def test_save_and_reload(self, config_manager, tmp_path):
        """Test saving a modified configuration."""
        config_manager.set('min_lightness', 120)
        path = tmp_path / "saved.yaml"
        config_manager.save(str(path))

        reloaded = ConfigManager(str(path))
        assert reloaded.get('min_lightness') == 120
        assert reloaded.get('armor.max_angle') == 35.0

    def test_resolve_path(self, config_manager):
        """Test that relative model paths resolve against the project root."""
        label_path = config_manager.resolve_path('classifier.label_path')
        assert label_path.endswith('label.txt')
        with open(label_path) as file:
            assert 'negative' in file.read()

        assert config_manager.resolve_path('classifier.missing') is None
