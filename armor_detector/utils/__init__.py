"""
Utility Functions and Helpers

Common utilities for the armor detection pipeline.
"""

from .config_manager import ConfigManager
from .visualization import draw_results, stack_number_images

__all__ = ['ConfigManager', 'draw_results', 'stack_number_images']
