"""
Light and Armor Detection Module

Extracts light bars from binary masks and pairs them into armors.
"""

from .light_detector import LightDetector
from .armor_matcher import ArmorMatcher

__all__ = ['LightDetector', 'ArmorMatcher']
