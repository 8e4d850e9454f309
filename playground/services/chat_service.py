"""
Chat Service Module

Business logic behind the chat and RAG relay endpoints.
Handles:
- Request validation (before any upstream call)
- Context retrieval and prompt preparation for RAG
- Full and streamed completions
"""

from typing import Optional, Dict, Any, Iterator, List, Tuple
import time

from playground.core.logging import get_logger
from playground.llm.client import LLMClient, get_llm_client
from playground.llm.streaming import RelayLog, relay_chat_stream, relay_rag_stream
from playground.models.request import ChatMessage, ChatMessageRole
from playground.models.response import SearchResult
from playground.rag.prompt import PromptBuilder, get_prompt_builder
from playground.rag.retriever import Retriever

logger = get_logger(__name__)


class InvalidRequestError(ValueError):
    """Request rejected before any upstream call"""


class ChatService:
    """
    Service for the chat relay and the retrieval-augmented relay.
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        retriever: Optional[Retriever] = None,
        prompt_builder: Optional[PromptBuilder] = None
    ):
        """Initialize chat service; missing collaborators come from the module defaults"""
        self.llm_client = llm_client or get_llm_client()
        self._retriever = retriever
        self.prompt_builder = prompt_builder or get_prompt_builder()

        logger.info("Initialized ChatService")

    @property
    def retriever(self) -> Retriever:
        # Only the RAG relay needs the embedding and vector clients
        if self._retriever is None:
            self._retriever = Retriever()
        return self._retriever

    def validate_messages(self, messages: List[ChatMessage]) -> str:
        """
        Check that the latest message carries text.

        Args:
            messages: Conversation history, oldest first

        Returns:
            The latest message content

        Raises:
            InvalidRequestError: If there is no message or its content is blank
        """
        if not messages:
            raise InvalidRequestError("Message content cannot be empty")

        question = messages[-1].content
        if not isinstance(question, str) or not question.strip():
            raise InvalidRequestError("Please enter a valid text")

        return question

    def complete_chat(self, messages: List[ChatMessage]) -> ChatMessage:
        """
        Relay a conversation and wait for the full reply.

        Raises:
            InvalidRequestError: If the messages are invalid
        """
        self.validate_messages(messages)

        start_time = time.time()
        message = self.llm_client.complete(messages)
        logger.info(f"Generated chat response in {time.time() - start_time:.2f}s")

        return message

    def stream_chat(self, messages: List[ChatMessage], log: Optional[RelayLog] = None) -> Iterator[str]:
        """
        Relay a conversation as SSE frames.

        Validation and opening the upstream stream happen before this
        returns, so their errors surface as a normal error response.
        """
        self.validate_messages(messages)

        deltas = self.llm_client.open_stream(messages)
        return relay_chat_stream(deltas, log=log)

    def prepare_rag_prompt(
        self,
        question: str,
        search_index: str,
        top_k: int
    ) -> Tuple[str, SearchResult]:
        """
        Embed the question, search the collection and build the prompt.

        Args:
            question: User question
            search_index: Vector collection name
            top_k: Number of passages to retrieve

        Returns:
            Tuple of (prompt, search_result)
        """
        search_result = self.retriever.retrieve(
            question=question,
            collection=search_index,
            top_k=top_k
        )
        prompt = self.prompt_builder.build_rag_prompt(
            Retriever.passages(search_result),
            question
        )
        return prompt, search_result

    def _validate_rag(self, messages: List[ChatMessage], search_index: Optional[str]) -> str:
        question = self.validate_messages(messages)
        if not search_index or not search_index.strip():
            raise InvalidRequestError("searchIndex is required")
        return question

    def complete_rag(
        self,
        messages: List[ChatMessage],
        search_index: Optional[str],
        top_k: int
    ) -> Dict[str, Any]:
        """
        Answer the latest question with retrieved context, non-streaming.

        Returns:
            Dict with message, prompt and searchResult
        """
        question = self._validate_rag(messages, search_index)

        start_time = time.time()
        prompt, search_result = self.prepare_rag_prompt(question, search_index, top_k)
        message = self.llm_client.complete(
            [ChatMessage(role=ChatMessageRole.USER, content=prompt)]
        )
        logger.info(f"Generated RAG response in {time.time() - start_time:.2f}s")

        return {
            "message": message,
            "prompt": prompt,
            "searchResult": search_result
        }

    def stream_rag(
        self,
        messages: List[ChatMessage],
        search_index: Optional[str],
        top_k: int,
        log: Optional[RelayLog] = None
    ) -> Iterator[str]:
        """
        Answer the latest question with retrieved context as SSE frames.

        The searchResult frame is first, ahead of any model token.
        """
        question = self._validate_rag(messages, search_index)

        prompt, search_result = self.prepare_rag_prompt(question, search_index, top_k)
        deltas = self.llm_client.open_stream(
            [ChatMessage(role=ChatMessageRole.USER, content=prompt)]
        )
        return relay_rag_stream(search_result, deltas, log=log)

    def list_collections(self) -> List[str]:
        """Vector collections available to the RAG relay"""
        return self.retriever.vector_search_client.list_collections()


# Global service instance
_chat_service = None


def get_chat_service() -> ChatService:
    """Get or create chat service instance"""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service
