"""
Inference service interface contracts.

The text-generation model is an external collaborator reached through
``infer``. Callers own prompt construction and response validation; a
malformed response is a failure to handle, never a crash.
"""

from abc import ABC, abstractmethod
from typing import Optional, Protocol


class InferenceService(Protocol):
    """Interface for the text-generation/classification service."""

    async def infer(
        self,
        prompt: str,
        expect_json: bool = False,
        operation: str = "generate",
    ) -> str:
        """
        Run a prompt through the model.

        Args:
            prompt: Full prompt text
            expect_json: Ask the service to constrain output to JSON
            operation: Label used for metrics (annotate, summarize, ...)

        Returns:
            Raw response text

        Raises:
            InferenceError: If the service cannot produce a response
        """
        ...

    async def check_connection(self) -> bool:
        """Return True if the service is reachable and the model is available."""
        ...

    async def close(self) -> None:
        """Release client resources."""
        ...


class BaseInferenceService(ABC):
    """Abstract base class for inference service implementations."""

    @abstractmethod
    async def infer(
        self,
        prompt: str,
        expect_json: bool = False,
        operation: str = "generate",
    ) -> str:
        pass

    @abstractmethod
    async def check_connection(self) -> bool:
        pass

    async def close(self) -> None:
        pass


class InferenceError(Exception):
    """Exception raised when the inference service call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
