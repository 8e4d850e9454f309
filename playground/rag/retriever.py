"""
Retriever Module

The "R" in RAG: embeds the question and fetches the nearest passages
from a vector collection.

Retrieval Process:
1. Convert question to embedding
2. Search the requested collection for the top_k nearest points
3. Hand back the index's result as-is
"""

from typing import List, Optional

from playground.core.config import settings
from playground.core.logging import get_logger
from playground.models.response import SearchResult
from playground.rag.embeddings import get_embedding_client
from playground.rag.vector_store import get_vector_search_client

logger = get_logger(__name__)


class Retriever:
    """
    Retrieves passages for a question from a vector collection.
    """

    def __init__(
        self,
        vector_search_client=None,
        embedding_client=None,
        top_k: int = settings.RETRIEVAL_TOP_K
    ):
        """
        Initialize retriever.

        Args:
            vector_search_client: Vector search client (uses default if None)
            embedding_client: Embedding client (uses default if None)
            top_k: Default number of results
        """
        self.vector_search_client = vector_search_client or get_vector_search_client()
        self.embedding_client = embedding_client or get_embedding_client()
        self.top_k = top_k

    def retrieve(
        self,
        question: str,
        collection: str,
        top_k: Optional[int] = None
    ) -> SearchResult:
        """
        Retrieve passages for a question.

        Args:
            question: User question
            collection: Vector collection to search
            top_k: Override default top_k

        Returns:
            SearchResult exactly as the index ordered it
        """
        k = top_k or self.top_k
        logger.debug(f"Retrieving {k} passages from '{collection}' for: {question[:100]}...")

        embedding = self.embedding_client.embed_text(question)
        result = self.vector_search_client.search(
            collection=collection,
            embedding=embedding,
            top_k=k
        )

        logger.info(f"Retrieved {len(result.points)} passages from '{collection}'")
        return result

    @staticmethod
    def passages(result: SearchResult) -> List[str]:
        """Passage texts in result order"""
        return result.page_contents()
