"""
Ollama provider adapter.

Communicates with the Ollama API using httpx AsyncClient. Supports:
- Chat completion via POST /api/chat (JSON output mode)
- Simulated sessions: conversation history kept in memory per session id
- Health checks and model listing via GET /api/tags

Connection-level failures are raised as LLMClientError subclasses with a
status code where one exists; the retry controller decides whether to retry.
"""

import json
import time
import uuid
from typing import Any, Optional

import httpx
import structlog

from persuader.config import settings
from persuader.llm.base_client import ProviderAdapter
from persuader.llm.exceptions import (
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from persuader.models.llm_models import (
    ProviderHealth,
    ProviderPromptOptions,
    ProviderResponse,
    ProviderSessionOptions,
    TokenUsage,
)
from persuader.monitoring.metrics import llm_latency_seconds, llm_tokens_total

logger = structlog.get_logger(__name__)


class OllamaProvider(ProviderAdapter):
    """
    Ollama adapter using httpx for async HTTP communication.

    API Endpoints:
    - POST /api/chat: Chat completion (non-streaming)
    - GET /api/tags: List available models (also used for health)

    Sessions are simulated: ``create_session`` stores the context as a
    system message and every successful ``send_prompt`` on that session
    appends the user/assistant exchange.
    """

    name = "ollama"
    supports_session = True

    def __init__(
        self,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
        timeout: Optional[float] = None,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Ollama adapter.

        Args:
            base_url: Ollama server URL (default from settings)
            default_model: Model used when options carry none (default from settings)
            timeout: Request timeout in seconds (default from settings)
            connection_limits: httpx connection pool limits
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip("/")
        self.default_model = default_model or settings.OLLAMA_MODEL
        self.timeout = timeout if timeout is not None else settings.OLLAMA_TIMEOUT

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0,
            )
        self._connection_limits = connection_limits
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._sessions: dict[str, list[dict[str, str]]] = {}

        logger.info(
            "Ollama provider initialized",
            base_url=self.base_url,
            default_model=self.default_model,
            timeout=self.timeout,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
                follow_redirects=True,
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client

    async def create_session(
        self, context: str, options: Optional[ProviderSessionOptions] = None
    ) -> str:
        session_id = str(uuid.uuid4())
        self._sessions[session_id] = [{"role": "system", "content": context}]
        logger.info(
            "Ollama simulated session created",
            session_id=session_id,
            context_length=len(context),
            model=(options.model if options else None) or self.default_model,
            total_sessions=len(self._sessions),
        )
        return session_id

    async def destroy_session(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.debug("Ollama simulated session destroyed", session_id=session_id)

    async def send_success_feedback(
        self, session_id: str, message: str, validated_output: Any = None
    ) -> None:
        history = self._sessions.get(session_id)
        if history is not None:
            history.append({"role": "user", "content": message})

    def _messages_for(self, session_id: Optional[str], prompt: str) -> list[dict[str, str]]:
        if session_id is None:
            return [{"role": "user", "content": prompt}]
        history = self._sessions.get(session_id)
        if history is None:
            logger.warning("Unknown Ollama session, sending prompt without history", session_id=session_id)
            return [{"role": "user", "content": prompt}]
        return [*history, {"role": "user", "content": prompt}]

    async def send_prompt(
        self,
        session_id: Optional[str],
        prompt: str,
        options: ProviderPromptOptions,
    ) -> ProviderResponse:
        """
        Send a chat request to Ollama.

        POST /api/chat with payload:
        {
            "model": "llama3.2",
            "messages": [{"role": "system", ...}, {"role": "user", "content": "..."}],
            "stream": false,
            "format": "json",
            "options": {"temperature": 0.4, "num_predict": 4096}
        }

        Response:
        {
            "model": "llama3.2",
            "message": {"role": "assistant", "content": "..."},
            "done": true,
            "done_reason": "stop",
            "prompt_eval_count": 50,
            "eval_count": 150
        }
        """
        start_time = time.time()
        model = options.model or self.default_model

        generation_options: dict[str, Any] = {}
        if options.temperature is not None:
            generation_options["temperature"] = options.temperature
        if options.max_tokens is not None:
            generation_options["num_predict"] = options.max_tokens
        if options.top_p is not None:
            generation_options["top_p"] = options.top_p
        if options.top_k is not None:
            generation_options["top_k"] = options.top_k

        payload: dict[str, Any] = {
            "model": model,
            "messages": self._messages_for(session_id, prompt),
            "stream": False,
            "format": "json",
        }
        if generation_options:
            payload["options"] = generation_options

        logger.info(
            "Sending chat request to Ollama",
            model=model,
            prompt_length=len(prompt),
            session_id=session_id,
            messages=len(payload["messages"]),
        )

        try:
            client = await self._get_client()
            response = await client.post("/api/chat", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            self._observe_failure(start_time)
            raise LLMTimeoutError(
                f"Request timeout after {self.timeout}s",
                details={"timeout": self.timeout, "error": str(e)},
            ) from e
        except httpx.HTTPStatusError as e:
            self._observe_failure(start_time)
            raise self._status_error(e, model) from e
        except httpx.HTTPError as e:
            self._observe_failure(start_time)
            raise LLMConnectionError(
                f"Network error: {e}",
                details={"error_type": type(e).__name__},
            ) from e
        except json.JSONDecodeError as e:
            self._observe_failure(start_time)
            raise LLMGenerationError(
                "Invalid JSON response from Ollama",
                details={"parse_error": str(e)},
            ) from e

        content = (data.get("message") or {}).get("content", "")
        if not content:
            self._observe_failure(start_time)
            raise LLMGenerationError("Empty response from Ollama", details={"response": data})

        latency_s = time.time() - start_time
        input_tokens = data.get("prompt_eval_count") or 0
        output_tokens = data.get("eval_count") or 0
        done_reason = data.get("done_reason") or ("stop" if data.get("done") else "incomplete")

        llm_latency_seconds.labels(provider=self.name, success="true").observe(latency_s)
        if input_tokens:
            llm_tokens_total.labels(provider=self.name, token_type="input").inc(input_tokens)
        if output_tokens:
            llm_tokens_total.labels(provider=self.name, token_type="output").inc(output_tokens)

        if session_id is not None and session_id in self._sessions:
            self._sessions[session_id].extend(
                [
                    {"role": "user", "content": prompt},
                    {"role": "assistant", "content": content},
                ]
            )

        logger.info(
            "Ollama chat successful",
            model=data.get("model", model),
            latency_ms=int(latency_s * 1000),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            done_reason=done_reason,
        )

        return ProviderResponse(
            content=content,
            token_usage=TokenUsage(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
            stop_reason=done_reason,
            truncated=done_reason == "length",
            metadata={
                "model": data.get("model", model),
                "total_duration": data.get("total_duration"),
                "eval_duration": data.get("eval_duration"),
            },
        )

    def _status_error(self, e: httpx.HTTPStatusError, model: str) -> LLMGenerationError:
        status_code = e.response.status_code
        error_text = e.response.text
        logger.error("Ollama HTTP error", status_code=status_code, error_text=error_text)

        if status_code == 404:
            return LLMModelNotAvailableError(
                f"Model not found: {model}",
                details={"model": model, "status": status_code},
            )
        if status_code == 429:
            return LLMRateLimitError(
                "Ollama rate limit exceeded",
                details={"status": status_code, "error": error_text},
            )
        if status_code >= 500:
            return LLMGenerationError(
                f"Ollama server error: {status_code}",
                details={"status": status_code, "error": error_text},
            )
        return LLMGenerationError(
            f"Ollama client error: {status_code}",
            details={"status": status_code, "error": error_text},
        )

    def _observe_failure(self, start_time: float) -> None:
        llm_latency_seconds.labels(provider=self.name, success="false").observe(time.time() - start_time)

    async def list_models(self) -> list[str]:
        """
        List all available models via GET /api/tags.

        Returns:
            List of model names (e.g., ["llama3.2", "qwen2.5:7b"])
        """
        try:
            client = await self._get_client()
            response = await client.get("/api/tags", timeout=10.0)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise LLMConnectionError(f"Failed to list models: {e}", details={"error": str(e)}) from e
        return [m["name"] for m in response.json().get("models", [])]

    async def get_health(self) -> ProviderHealth:
        """
        Check Ollama server health via GET /api/tags.

        Never raises: an unreachable server is reported as unhealthy.
        """
        start_time = time.time()
        try:
            models = await self.list_models()
        except LLMConnectionError as e:
            logger.warning("Ollama health check failed", error=e.message)
            return ProviderHealth(
                healthy=False,
                response_time_ms=(time.time() - start_time) * 1000,
                error=e.message,
                details={"base_url": self.base_url},
            )

        return ProviderHealth(
            healthy=True,
            response_time_ms=(time.time() - start_time) * 1000,
            details={
                "base_url": self.base_url,
                "default_model": self.default_model,
                "active_sessions": len(self._sessions),
                "available_models": len(models),
                "models": models[:5],
            },
        )

    async def close(self) -> None:
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed Ollama client connection")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
