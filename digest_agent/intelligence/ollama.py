"""
Ollama inference service.

Talks to a local Ollama server over its chat endpoint using httpx, with
retry and exponential backoff on transient failures and Prometheus
instrumentation per operation.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx

from digest_agent.intelligence.interfaces import BaseInferenceService, InferenceError
from digest_agent.observability.metrics import record_inference

logger = logging.getLogger(__name__)


class OllamaInferenceService(BaseInferenceService):
    """
    Inference service backed by an Ollama server.

    Example:
        ```python
        service = OllamaInferenceService(host="http://localhost:11434", model="llama3")
        text = await service.infer('Return {"ok": true}', expect_json=True)
        await service.close()
        ```
    """

    CHAT_PATH = "/api/chat"
    TAGS_PATH = "/api/tags"

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "llama3",
        max_retries: int = 3,
        timeout: float = 300,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the Ollama service.

        Args:
            host: Base URL of the Ollama server
            model: Model name to run
            max_retries: Maximum attempts per call
            timeout: Request timeout in seconds
            client: Optional preconfigured httpx client
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.host = host.rstrip("/")
        self.model = model
        self.max_retries = max_retries
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(base_url=self.host, timeout=timeout)

        logger.info(f"Initialized OllamaInferenceService (host={self.host}, model={model})")

    async def infer(
        self,
        prompt: str,
        expect_json: bool = False,
        operation: str = "generate",
    ) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }
        if expect_json:
            payload["format"] = "json"

        data = await self._call_api(payload, operation)

        try:
            content = data["message"]["content"]
        except (KeyError, TypeError) as e:
            raise InferenceError(f"Unexpected response shape from Ollama: {e}") from e
        if not isinstance(content, str):
            raise InferenceError(f"Ollama returned non-text content: {type(content).__name__}")
        return content

    async def check_connection(self) -> bool:
        """
        Check that the server answers and the configured model is pulled.

        Returns:
            True if the model is listed by the server
        """
        try:
            response = await self._client.get(self.TAGS_PATH)
            response.raise_for_status()
            models = response.json().get("models", [])
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

        names = {m.get("name", "") for m in models}
        available = any(n == self.model or n.split(":")[0] == self.model for n in names)
        if not available:
            logger.warning(f"Model '{self.model}' not found on {self.host}")
        return available

    async def _call_api(self, payload: Dict[str, Any], operation: str) -> Dict[str, Any]:
        """
        Call the chat endpoint with retry logic.

        Args:
            payload: Request body
            operation: Metrics label

        Returns:
            Decoded JSON response

        Raises:
            InferenceError: If all retries fail or the request is rejected
        """
        start_time = time.time()
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                response = await self._client.post(self.CHAT_PATH, json=payload)
                response.raise_for_status()
                data = response.json()

                duration = time.time() - start_time
                record_inference(operation, True, duration)
                logger.debug(f"Inference '{operation}' completed in {duration:.2f}s")
                return data

            except httpx.HTTPStatusError as e:
                last_error = e
                status = e.response.status_code

                # Don't retry client errors (except rate limits)
                if 400 <= status < 500 and status != 429:
                    record_inference(operation, False, time.time() - start_time)
                    raise InferenceError(
                        f"Ollama API error: {e.response.text}", status_code=status
                    ) from e

                logger.warning(
                    f"Ollama API error (attempt {attempt + 1}/{self.max_retries}): {status}"
                )

            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                logger.warning(
                    f"Ollama request failed (attempt {attempt + 1}/{self.max_retries}): {e}"
                )

            if attempt < self.max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        record_inference(operation, False, time.time() - start_time)
        raise InferenceError(
            f"Failed to call inference service after {self.max_retries} attempts: {last_error}"
        ) from last_error

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()
        logger.info("Closed OllamaInferenceService")
