"""
Vector Store Module

Clients for the external vector index that backs the RAG relay.

Search contract:
- Input: collection name, query embedding, result count (top_k)
- Output: SearchResult with points ordered closest first
- The index's ordering and count pass through untouched: no re-ranking,
  deduplication or score threshold is applied here

Backends:
- qdrant: Qdrant REST API (default)
- chroma: Chroma, embedded on disk or over HTTP
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
import numpy as np
import requests

from playground.core.config import settings
from playground.core.logging import get_logger
from playground.models.response import SearchPayload, SearchPoint, SearchResult

logger = get_logger(__name__)

try:
    import chromadb
except ImportError:
    logger.error("chromadb not installed. Install with: pip install chromadb")
    raise


class VectorSearchClient(ABC):
    """Nearest-neighbour search against a named collection"""

    @abstractmethod
    def search(self, collection: str, embedding: np.ndarray, top_k: int) -> SearchResult:
        pass

    @abstractmethod
    def list_collections(self) -> List[str]:
        pass

    @abstractmethod
    def health(self) -> Dict[str, Any]:
        pass


class QdrantSearchClient(VectorSearchClient):
    """
    Qdrant client over its REST API.
    """

    def __init__(
        self,
        url: str = settings.QDRANT_URL,
        api_key: Optional[str] = settings.QDRANT_API_KEY,
        timeout: int = settings.REQUEST_TIMEOUT
    ):
        """
        Initialize Qdrant client.

        Args:
            url: Qdrant base URL (e.g. http://localhost:6333)
            api_key: Optional API key sent in the api-key header
            timeout: Request timeout in seconds
        """
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

        logger.info(f"Initialized Qdrant client at {self.url}")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["api-key"] = self.api_key
        return headers

    def search(self, collection: str, embedding: np.ndarray, top_k: int) -> SearchResult:
        """
        Query a collection for the points nearest to an embedding.

        Args:
            collection: Collection name
            embedding: Query embedding vector
            top_k: Maximum number of points to return

        Returns:
            SearchResult in the order Qdrant returned

        Raises:
            requests.exceptions.RequestException: If the API call fails
        """
        if embedding is None or len(embedding) == 0:
            logger.warning("Empty embedding provided for search")
            return SearchResult()

        try:
            response = requests.post(
                f"{self.url}/collections/{collection}/points/query",
                json={
                    "query": np.asarray(embedding).tolist(),
                    "limit": top_k,
                    "with_payload": True,
                },
                headers=self._headers(),
                timeout=self.timeout
            )
            response.raise_for_status()

            result = response.json().get("result") or {}
            points = result.get("points", []) if isinstance(result, dict) else result

            search_result = SearchResult(
                points=[
                    SearchPoint(
                        id=p["id"],
                        score=p.get("score", 0.0),
                        payload=SearchPayload(**(p.get("payload") or {})),
                    )
                    for p in points
                ]
            )
            logger.debug(f"Qdrant returned {len(search_result.points)} points from '{collection}'")
            return search_result

        except Exception as e:
            logger.error(f"Error searching collection '{collection}': {e}")
            raise

    def list_collections(self) -> List[str]:
        """Return collection names"""
        try:
            response = requests.get(
                f"{self.url}/collections",
                headers=self._headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            collections = (response.json().get("result") or {}).get("collections", [])
            return [c["name"] for c in collections]
        except Exception as e:
            logger.error(f"Error listing collections: {e}")
            raise

    def health(self) -> Dict[str, Any]:
        """Return the Qdrant root document (title and version)"""
        response = requests.get(self.url, headers=self._headers(), timeout=self.timeout)
        response.raise_for_status()
        return {"backend": "qdrant", **response.json()}


class ChromaSearchClient(VectorSearchClient):
    """
    Chroma client; hits are reported with score = 1 - distance.
    """

    def __init__(
        self,
        client=None,
        persist_directory: str = settings.VECTOR_STORE_PATH,
        host: Optional[str] = settings.CHROMA_HOST,
        port: int = settings.CHROMA_PORT
    ):
        """
        Initialize Chroma search client.

        Args:
            client: Existing chromadb client (built from settings if None)
            persist_directory: Directory of an embedded Chroma database
            host: Chroma server host; when set, HTTP mode is used
            port: Chroma server port
        """
        if client is not None:
            self.client = client
        elif host:
            self.client = chromadb.HttpClient(host=host, port=port)
            logger.info(f"Initialized Chroma HTTP client at {host}:{port}")
        else:
            self.client = chromadb.PersistentClient(path=persist_directory)
            logger.info(f"Initialized Chroma client at {persist_directory}")

    def search(self, collection: str, embedding: np.ndarray, top_k: int) -> SearchResult:
        if embedding is None or len(embedding) == 0:
            logger.warning("Empty embedding provided for search")
            return SearchResult()

        try:
            results = self.client.get_collection(name=collection).query(
                query_embeddings=[np.asarray(embedding).tolist()],
                n_results=top_k,
                include=["documents", "metadatas", "distances"]
            )

            ids = (results.get("ids") or [[]])[0]
            documents = (results.get("documents") or [[]])[0]
            metadatas = (results.get("metadatas") or [[]])[0] or [None] * len(ids)
            distances = (results.get("distances") or [[]])[0]

            points = []
            for point_id, doc, metadata, distance in zip(ids, documents, metadatas, distances):
                payload = dict(metadata or {})
                payload["pageContent"] = doc or ""
                points.append(
                    SearchPoint(
                        id=point_id,
                        score=1 - float(distance),
                        payload=SearchPayload(**payload),
                    )
                )

            logger.debug(f"Chroma returned {len(points)} hits from '{collection}'")
            return SearchResult(points=points)

        except Exception as e:
            logger.error(f"Error searching collection '{collection}': {e}")
            raise

    def list_collections(self) -> List[str]:
        # Newer chromadb returns names, older returns Collection objects
        return [c if isinstance(c, str) else c.name for c in self.client.list_collections()]

    def health(self) -> Dict[str, Any]:
        return {"backend": "chroma", "heartbeat": self.client.heartbeat()}


_backends = {
    "qdrant": QdrantSearchClient,
    "chroma": ChromaSearchClient,
}

# Global vector search client instance
_vector_search_client: Optional[VectorSearchClient] = None


def create_vector_search_client(store_type: str = settings.VECTOR_STORE_TYPE) -> VectorSearchClient:
    """
    Build the configured vector search backend.

    Raises:
        ValueError: If the store type is not supported
    """
    if store_type not in _backends:
        raise ValueError(
            f"Unsupported vector store type: {store_type}. "
            f"Supported types: {list(_backends.keys())}"
        )
    logger.info(f"Creating {store_type} vector search client")
    return _backends[store_type]()


def get_vector_search_client() -> VectorSearchClient:
    """Get or create vector search client"""
    global _vector_search_client
    if _vector_search_client is None:
        _vector_search_client = create_vector_search_client()
    return _vector_search_client


def set_vector_search_client(client: Optional[VectorSearchClient]):
    """Set custom vector search client (None resets to the default)"""
    global _vector_search_client
    _vector_search_client = client
