"""Preprocessor registry for deploy-preprocessor.

Holds preprocessors for different cloud providers and composes stage plans
from every preprocessor that supports a given deploy stage.
"""

from deploy_preprocessor.plugins.registry import PreProcessorRegistry

__all__ = [
    "PreProcessorRegistry",
]
