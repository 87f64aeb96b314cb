"""
Inference layer: the external text-generation service and its contract.
"""

from digest_agent.intelligence.interfaces import (
    BaseInferenceService,
    InferenceError,
    InferenceService,
)
from digest_agent.intelligence.ollama import OllamaInferenceService

__all__ = [
    "InferenceService",
    "BaseInferenceService",
    "InferenceError",
    "OllamaInferenceService",
]
