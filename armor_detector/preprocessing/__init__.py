"""
Image Preprocessing Module

Binarizes RGB frames into light masks.
"""

from .image_preprocessor import ImagePreprocessor

__all__ = ['ImagePreprocessor']
