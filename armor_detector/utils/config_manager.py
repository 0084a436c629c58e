"""
Configuration Management System

Handles loading, validation, and management of detector parameters.
Parameters can be updated from another thread while frames are processed;
every frame reads one consistent snapshot through ``snapshot()``.
"""

import copy
import logging
import threading
import yaml
from typing import Dict, Any, Optional
from pathlib import Path

from ..data_models import ArmorParams, DetectColor, DetectorParams, LightParams

PREPROCESS_METHODS = ('brightness', 'color_difference')


class ConfigManager:
    """Manages configuration parameters for the armor detection pipeline."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, uses default config.
        """
        self.logger = logging.getLogger(__name__)
        self.config_path = config_path or self._get_default_config_path()
        self._lock = threading.Lock()
        self._version = 0
        self.config = self._load_config()
        self._validate_config(self.config)

    def _get_default_config_path(self) -> str:
        """Get path to default configuration file."""
        current_dir = Path(__file__).parent.parent.parent
        return str(current_dir / "config" / "default_config.yaml")

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        try:
            with open(self.config_path, 'r') as file:
                config = yaml.safe_load(file)
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing configuration file: {e}")
        if not isinstance(config, dict):
            raise ValueError(f"Configuration file must contain a mapping: {self.config_path}")
        return config

    @staticmethod
    def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
        """Get a top-level section; an empty (null) section reads as {}."""
        section = config.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ValueError(f"{name} must be a mapping, got {type(section).__name__}")
        return section

    @staticmethod
    def _validate_config(config: Dict[str, Any]) -> None:
        """Validate configuration parameters for consistency and feasibility."""
        min_lightness = config.get('min_lightness', 160)
        if not isinstance(min_lightness, int) or not 0 <= min_lightness <= 255:
            raise ValueError("min_lightness must be an integer in [0, 255]")

        if config.get('detect_color', 0) not in (DetectColor.RED, DetectColor.BLUE):
            raise ValueError("detect_color must be 0 (RED) or 1 (BLUE)")

        method = ConfigManager._section(config, 'preprocess').get('method', 'brightness')
        if method not in PREPROCESS_METHODS:
            raise ValueError(f"Unknown preprocess method: {method}")

        try:
            ConfigManager._validate_numbers(config)
        except TypeError as e:
            raise ValueError(f"Invalid configuration value: {e}")

    @staticmethod
    def _validate_numbers(config: Dict[str, Any]) -> None:
        """Check numeric ranges and orderings."""
        # Validate light shape
        light = ConfigManager._section(config, 'light')
        if float(light.get('min_ratio', 0.1)) >= float(light.get('max_ratio', 0.55)):
            raise ValueError("light.min_ratio must be less than light.max_ratio")
        if not 0 < float(light.get('max_angle', 40.0)) <= 90:
            raise ValueError("light.max_angle must be in (0, 90]")

        # Validate armor bands
        armor = ConfigManager._section(config, 'armor')
        min_small = float(armor.get('min_small_center_distance', 0.8))
        max_small = float(armor.get('max_small_center_distance', 2.8))
        min_large = float(armor.get('min_large_center_distance', 3.2))
        max_large = float(armor.get('max_large_center_distance', 4.3))
        if min_small > max_small:
            raise ValueError("armor.min_small_center_distance must not exceed armor.max_small_center_distance")
        if min_large > max_large:
            raise ValueError("armor.min_large_center_distance must not exceed armor.max_large_center_distance")
        if not 0 < float(armor.get('min_light_ratio', 0.6)) <= 1:
            raise ValueError("armor.min_light_ratio must be in (0, 1]")
        if not 0 < float(armor.get('max_angle', 35.0)) <= 90:
            raise ValueError("armor.max_angle must be in (0, 90]")

        # Validate classifier threshold
        threshold = float(ConfigManager._section(config, 'classifier').get('threshold', 0.7))
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("classifier.threshold must be in [0, 1]")

        camera_matrix = ConfigManager._section(config, 'camera').get('camera_matrix')
        if camera_matrix is not None and len(camera_matrix) != 9:
            raise ValueError("camera.camera_matrix must have 9 elements (row-major 3x3)")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'light.min_ratio')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split('.')
        with self._lock:
            value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'light.min_ratio')
            value: Value to set
        """
        self.update({key: value})

    def update(self, values: Dict[str, Any]) -> None:
        """
        Apply several dot-notation updates as one atomic change.

        The new configuration is validated before it replaces the current
        one; on failure the current configuration is left untouched.

        Args:
            values: Mapping of dot-notation keys to new values
        """
        with self._lock:
            new_config = copy.deepcopy(self.config)
            for key, value in values.items():
                keys = key.split('.')
                config_ref = new_config
                for k in keys[:-1]:
                    if config_ref.get(k) is None:
                        config_ref[k] = {}
                    elif not isinstance(config_ref[k], dict):
                        raise ValueError(f"Cannot set {key}: {k} is not a section")
                    config_ref = config_ref[k]
                config_ref[keys[-1]] = value

            self._validate_config(new_config)
            self.config = new_config
            self._version += 1
            version = self._version

        self.logger.info(f"Configuration updated (version {version}): {sorted(values)}")

    @property
    def version(self) -> int:
        """Number of updates applied since loading."""
        with self._lock:
            return self._version

    def snapshot(self) -> DetectorParams:
        """
        Build an immutable parameter snapshot for one frame.

        Returns:
            DetectorParams reflecting a single configuration version
        """
        with self._lock:
            config = self.config
            version = self._version

        # self.config is only ever replaced, never mutated in place
        light = self._section(config, 'light')
        armor = self._section(config, 'armor')
        return DetectorParams(
            min_lightness=int(config.get('min_lightness', 160)),
            detect_color=DetectColor(config.get('detect_color', DetectColor.RED)),
            light=LightParams(
                min_ratio=float(light.get('min_ratio', 0.1)),
                max_ratio=float(light.get('max_ratio', 0.55)),
                max_angle=float(light.get('max_angle', 40.0))
            ),
            armor=ArmorParams(
                min_light_ratio=float(armor.get('min_light_ratio', 0.6)),
                min_small_center_distance=float(armor.get('min_small_center_distance', 0.8)),
                max_small_center_distance=float(armor.get('max_small_center_distance', 2.8)),
                min_large_center_distance=float(armor.get('min_large_center_distance', 3.2)),
                max_large_center_distance=float(armor.get('max_large_center_distance', 4.3)),
                max_angle=float(armor.get('max_angle', 35.0))
            ),
            classifier_threshold=float(self._section(config, 'classifier').get('threshold', 0.7)),
            preprocess_method=self._section(config, 'preprocess').get('method', 'brightness'),
            version=version
        )

    def save(self, output_path: Optional[str] = None) -> None:
        """
        Save current configuration to file.

        Args:
            output_path: Path to save configuration. If None, overwrites current file.
        """
        save_path = output_path or self.config_path
        with self._lock:
            config = self.config

        with open(save_path, 'w') as file:
            yaml.dump(config, file, default_flow_style=False, indent=2)

    def resolve_path(self, key: str) -> Optional[str]:
        """
        Resolve a path-valued key; relative paths are taken from the project root.

        Args:
            key: Configuration key holding a path (e.g., 'classifier.model_path')

        Returns:
            Absolute path string, or None if the key is not set
        """
        value = self.get(key)
        if value is None:
            return None
        path = Path(value)
        if not path.is_absolute():
            path = Path(__file__).parent.parent.parent / path
        return str(path)

    def get_preprocess_params(self) -> Dict[str, Any]:
        """Get preprocessing parameters as a dictionary."""
        return self.get('preprocess') or {}

    def get_classifier_params(self) -> Dict[str, Any]:
        """Get number classifier parameters as a dictionary."""
        return self.get('classifier') or {}

    def get_camera_params(self) -> Dict[str, Any]:
        """Get camera parameters as a dictionary."""
        return self.get('camera') or {}

    def get_depth_params(self) -> Dict[str, Any]:
        """Get depth lookup parameters as a dictionary."""
        return self.get('depth') or {}
