"""
Classifier module for agentgate.

This module provides the semantic classification capability used by the
deep-scan passes of the pattern guard and the settlement guard.

Components:
    - Classifier: Abstract base class for all classifiers
    - ProviderError: A classifier failure reported as a value
    - classify_safely: The boundary that turns failures into ProviderError
    - parse_structured_output: Fence-stripping JSON + schema parsing
    - OpenAIClassifier / AnthropicClassifier: HTTP adapters
"""

from agentgate.classifier.anthropic import AnthropicClassifier, AnthropicConfig
from agentgate.classifier.base import (
    DEFAULT_CLASSIFIER_TIMEOUT,
    Classifier,
    ClassifierOutcome,
    ProviderError,
    classify_safely,
    report_provider_error,
)
from agentgate.classifier.openai import OpenAIClassifier, OpenAIConfig
from agentgate.classifier.structured import parse_structured_output, strip_code_fences

__all__ = [
    "DEFAULT_CLASSIFIER_TIMEOUT",
    "AnthropicClassifier",
    "AnthropicConfig",
    "Classifier",
    "ClassifierOutcome",
    "OpenAIClassifier",
    "OpenAIConfig",
    "ProviderError",
    "classify_safely",
    "parse_structured_output",
    "report_provider_error",
    "strip_code_fences",
]
