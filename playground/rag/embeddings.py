"""
Embeddings Module

Turns a user question into a dense vector through an OpenAI-compatible
/embeddings endpoint. The vector is then used to query the vector index.
"""

import numpy as np
from typing import Optional
import requests

from playground.core.config import settings
from playground.core.logging import get_logger
from playground.utils.text import normalize_whitespace

logger = get_logger(__name__)


class EmbeddingClient:
    """
    Embedding client for OpenAI-compatible embedding APIs.
    """

    def __init__(
        self,
        base_url: str = settings.EMBEDDING_BASE_URL,
        api_key: Optional[str] = settings.LLM_API_KEY,
        model: str = settings.EMBEDDING_MODEL,
        timeout: int = settings.REQUEST_TIMEOUT
    ):
        """
        Initialize embedding client.

        Args:
            base_url: API base URL (e.g. https://api.openai.com/v1)
            api_key: Bearer token for the embedding API
            model: Embedding model name (e.g., 'text-embedding-3-large')
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

        logger.info(f"Initialized Embedding Client with model: {self.model}")

    def embed_text(self, text: str) -> np.ndarray:
        """
        Generate embedding for a single text.

        Runs of whitespace are collapsed to single spaces before the text is
        sent. Empty input returns an empty vector without calling the API.

        Args:
            text: Input text to embed

        Returns:
            Numpy array with the embedding (empty for empty input)

        Raises:
            requests.exceptions.RequestException: If API call fails
            ValueError: If the response carries no embedding
        """
        text = normalize_whitespace(text or "")
        if not text:
            logger.warning("Empty text provided for embedding")
            return np.array([], dtype=np.float32)

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = requests.post(
                f"{self.base_url}/embeddings",
                json={"model": self.model, "input": text},
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()

            data = response.json().get("data", [])
            if not data:
                raise ValueError("No embeddings returned from embedding API")

            embedding = np.array(data[0]["embedding"], dtype=np.float32)
            logger.debug(f"Generated embedding of dimension {embedding.shape[0]}")
            return embedding

        except Exception as e:
            logger.error(f"Error generating embedding: {e}")
            raise


# Global embedding client instance
_embedding_client: Optional[EmbeddingClient] = None


def get_embedding_client() -> EmbeddingClient:
    """Get or create embedding client"""
    global _embedding_client
    if _embedding_client is None:
        _embedding_client = EmbeddingClient()
    return _embedding_client


def set_embedding_client(client: Optional[EmbeddingClient]):
    """Set custom embedding client (None resets to the default)"""
    global _embedding_client
    _embedding_client = client


def embed_text(text: str) -> np.ndarray:
    """Convenience function to embed single text"""
    return get_embedding_client().embed_text(text)
