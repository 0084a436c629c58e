"""
3D Localization Module

Back-projects armor centers with aligned depth frames.
"""

from .depth_processor import DepthProcessor

__all__ = ['DepthProcessor']
