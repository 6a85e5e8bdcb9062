from .enhancer import ModelEnhancer
from .evaluator import DescriptorEvaluator, DescriptorFunction, register_descriptor_function

__all__ = [
    "DescriptorEvaluator",
    "DescriptorFunction",
    "ModelEnhancer",
    "register_descriptor_function",
]
