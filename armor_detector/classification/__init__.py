"""
Number Classification Module

Normalizes armor number crops and classifies them with an ONNX model.
"""

from .number_classifier import NumberClassifier, load_labels

__all__ = ['NumberClassifier', 'load_labels']
