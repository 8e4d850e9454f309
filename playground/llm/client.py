import requests
import json
from typing import Iterator, Optional, Dict, Any, List
from abc import ABC, abstractmethod

from playground.core.config import settings
from playground.core.logging import get_logger
from playground.models.request import ChatMessage, ChatMessageRole

logger = get_logger(__name__)


class LLMClient(ABC):
    """Abstract base class for chat-completion clients"""

    model: str

    @abstractmethod
    def complete(self, messages: List[ChatMessage]) -> ChatMessage:
        """Return the full assistant message for a conversation"""
        pass

    @abstractmethod
    def open_stream(self, messages: List[ChatMessage]) -> Iterator[str]:
        """
        Open an incremental completion.

        The upstream request is sent and its status checked before this
        returns, so connection and HTTP errors raise here. The returned
        iterator yields non-empty text deltas in arrival order; closing it
        closes the upstream response.
        """
        pass


class OpenAIClient(LLMClient):
    """Client for OpenAI-compatible /chat/completions endpoints"""

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        api_key: Optional[str] = settings.LLM_API_KEY,
        model: str = settings.LLM_MODEL_NAME,
        temperature: float = settings.LLM_TEMPERATURE,
        top_p: float = settings.LLM_TOP_P,
        frequency_penalty: float = settings.LLM_FREQUENCY_PENALTY,
        presence_penalty: float = settings.LLM_PRESENCE_PENALTY,
        max_tokens: int = settings.LLM_MAX_TOKENS,
        timeout: int = settings.REQUEST_TIMEOUT
    ):
        """
        Initialize OpenAI-compatible client

        Args:
            base_url: API base URL, including the version segment (e.g. .../v1)
            api_key: Bearer token sent in the Authorization header
            model: Model name (e.g., 'gpt-4o')
            temperature: Sampling temperature
            top_p: Nucleus sampling threshold
            frequency_penalty: Frequency penalty
            presence_penalty: Presence penalty
            max_tokens: Maximum tokens to generate
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self.frequency_penalty = frequency_penalty
        self.presence_penalty = presence_penalty
        self.max_tokens = max_tokens
        self.timeout = timeout

        logger.info(f"Initialized OpenAI-compatible client with model: {self.model}")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _build_payload(self, messages: List[ChatMessage], stream: bool) -> Dict[str, Any]:
        """Build request payload with the fixed generation policy"""
        return {
            "model": self.model,
            "messages": [m.to_payload() for m in messages],
            "temperature": self.temperature,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
            "max_tokens": self.max_tokens,
            "stream": stream,
        }

    def complete(self, messages: List[ChatMessage]) -> ChatMessage:
        """
        Generate the full assistant reply.

        Raises:
            requests.exceptions.RequestException: If the API call fails
            ValueError: If the response body is not a completion
        """
        try:
            logger.debug(f"Completing {len(messages)} messages with model: {self.model}")
            response = requests.post(
                f"{self.base_url}/chat/completions",
                json=self._build_payload(messages, stream=False),
                headers=self._headers(),
                timeout=self.timeout
            )
            response.raise_for_status()

            message = response.json()["choices"][0]["message"]
            return ChatMessage(
                role=message.get("role", ChatMessageRole.ASSISTANT.value),
                content=message.get("content") or ""
            )

        except requests.exceptions.RequestException as e:
            logger.error(f"Error generating completion: {e}")
            raise
        except (KeyError, IndexError, ValueError) as e:
            logger.error(f"Error parsing completion response: {e}")
            raise ValueError(f"Malformed completion response: {e}") from e

    def open_stream(self, messages: List[ChatMessage]) -> Iterator[str]:
        """
        Open a streamed completion.

        Raises:
            requests.exceptions.RequestException: If the request cannot be opened
        """
        logger.debug(f"Streaming {len(messages)} messages with model: {self.model}")
        try:
            response = requests.post(
                f"{self.base_url}/chat/completions",
                json=self._build_payload(messages, stream=True),
                headers=self._headers(),
                timeout=self.timeout,
                stream=True
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error opening completion stream: {e}")
            raise

        return self._iter_deltas(response)

    def _iter_deltas(self, response: requests.Response) -> Iterator[str]:
        """Yield text deltas from an SSE completion body"""
        try:
            for raw in response.iter_lines():
                if not raw:
                    continue
                line = raw.decode("utf-8") if isinstance(raw, bytes) else raw
                if not line.startswith("data:"):
                    continue
                data = line[len("data:"):].strip()
                if data == "[DONE]":
                    break
                try:
                    chunk = json.loads(data)
                except json.JSONDecodeError as e:
                    logger.warning(f"Error parsing streaming response line: {e}")
                    continue

                if "error" in chunk:
                    error = chunk["error"]
                    message = error.get("message") if isinstance(error, dict) else error
                    raise RuntimeError(f"Upstream stream error: {message}")

                choices = chunk.get("choices") or []
                if not choices:
                    continue
                content = (choices[0].get("delta") or {}).get("content") or ""
                if content:
                    yield content

            logger.debug("Completion stream finished")
        finally:
            response.close()


class OllamaClient(LLMClient):
    """Ollama client using the /api/chat endpoint"""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = settings.LLM_MODEL_NAME,
        temperature: float = settings.LLM_TEMPERATURE,
        top_p: float = settings.LLM_TOP_P,
        frequency_penalty: float = settings.LLM_FREQUENCY_PENALTY,
        presence_penalty: float = settings.LLM_PRESENCE_PENALTY,
        max_tokens: int = settings.LLM_MAX_TOKENS,
        timeout: int = settings.REQUEST_TIMEOUT
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self.frequency_penalty = frequency_penalty
        self.presence_penalty = presence_penalty
        self.max_tokens = max_tokens
        self.timeout = timeout

        logger.info(f"Initialized Ollama client with model: {self.model}")

    def _build_payload(self, messages: List[ChatMessage], stream: bool) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [m.to_payload() for m in messages],
            "stream": stream,
            "options": {
                "temperature": self.temperature,
                "top_p": self.top_p,
                "frequency_penalty": self.frequency_penalty,
                "presence_penalty": self.presence_penalty,
                "num_predict": self.max_tokens,
            },
        }

    def complete(self, messages: List[ChatMessage]) -> ChatMessage:
        try:
            response = requests.post(
                f"{self.base_url}/api/chat",
                json=self._build_payload(messages, stream=False),
                timeout=self.timeout
            )
            response.raise_for_status()

            message = response.json().get("message") or {}
            return ChatMessage(
                role=ChatMessageRole.ASSISTANT,
                content=message.get("content", "")
            )

        except requests.exceptions.RequestException as e:
            logger.error(f"Error generating response: {e}")
            raise
        except ValueError as e:
            logger.error(f"Error parsing Ollama response: {e}")
            raise

    def open_stream(self, messages: List[ChatMessage]) -> Iterator[str]:
        try:
            response = requests.post(
                f"{self.base_url}/api/chat",
                json=self._build_payload(messages, stream=True),
                timeout=self.timeout,
                stream=True
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error opening Ollama stream: {e}")
            raise

        return self._iter_deltas(response)

    def _iter_deltas(self, response: requests.Response) -> Iterator[str]:
        """Yield text deltas from Ollama's NDJSON stream"""
        try:
            for line in response.iter_lines():
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.warning(f"Error parsing streaming response line: {e}")
                    continue
                if data.get("error"):
                    raise RuntimeError(f"Upstream stream error: {data['error']}")
                chunk = (data.get("message") or {}).get("content", "")
                if chunk:
                    yield chunk
                if data.get("done"):
                    break
        finally:
            response.close()


class LLMClientFactory:
    """Factory for creating LLM clients"""

    _clients = {
        "openai": OpenAIClient,
        "ollama": OllamaClient,
    }

    @classmethod
    def create_client(
        cls,
        client_type: str = settings.LLM_TYPE,
        **kwargs
    ) -> LLMClient:
        """
        Create LLM client instance

        Args:
            client_type: Type of client ('openai' or 'ollama')
            **kwargs: Additional arguments for client initialization

        Returns:
            LLMClient instance

        Raises:
            ValueError: If client type is not supported
        """
        if client_type not in cls._clients:
            raise ValueError(
                f"Unsupported LLM client type: {client_type}. "
                f"Supported types: {list(cls._clients.keys())}"
            )

        client_class = cls._clients[client_type]
        logger.info(f"Creating {client_type} LLM client")
        return client_class(**kwargs)


# Default client instance
llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create the LLM client"""
    global llm_client
    if llm_client is None:
        kwargs = {}
        if settings.LLM_BASE_URL:
            kwargs["base_url"] = settings.LLM_BASE_URL
        llm_client = LLMClientFactory.create_client(settings.LLM_TYPE, **kwargs)
    return llm_client


def set_llm_client(client: Optional[LLMClient]):
    """Set custom LLM client (None resets to the configured default)"""
    global llm_client
    llm_client = client
