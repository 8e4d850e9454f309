from typing import Callable, List, Optional

import requests

from playground.client.consumer import StreamConsumer
from playground.core.logging import get_logger
from playground.models.request import ChatMessage, ChatMessageRole
from playground.models.response import SearchResult

logger = get_logger(__name__)


class ChatSession:
    """
    Conversation held on the client side, streamed through the relay.

    The server keeps nothing between requests; the plain chat relay gets the
    whole history each turn, the RAG relay only the new question.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        on_content: Optional[Callable[[str], None]] = None,
        on_search_result: Optional[Callable[[SearchResult], None]] = None,
        http: Optional[requests.Session] = None,
        timeout: Optional[float] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout
        self.messages: List[ChatMessage] = []
        self.consumer = StreamConsumer(on_content=on_content, on_search_result=on_search_result)

    @property
    def search_result(self) -> Optional[SearchResult]:
        return self.consumer.search_result

    def send(
        self,
        text: str,
        rag: bool = False,
        search_index: Optional[str] = None,
        top_k: int = 10
    ) -> Optional[ChatMessage]:
        """
        Send one user turn and stream the reply.

        Args:
            text: User input; blank input is ignored
            rag: Use the RAG relay instead of the plain chat relay
            search_index: Collection for the RAG relay
            top_k: Passages to retrieve for the RAG relay

        Returns:
            The assistant message if the stream completed, else None

        Raises:
            RuntimeError: If a previous send is still in flight
        """
        text = text.strip()
        if not text:
            return None

        self.consumer.begin()

        user_message = ChatMessage(role=ChatMessageRole.USER, content=text)
        if rag:
            self.messages = [user_message]
            url = f"{self.base_url}/api/ragChat"
            body = {
                "messages": [user_message.to_payload()],
                "searchIndex": search_index,
                "topK": top_k,
                "stream": True,
            }
        else:
            self.messages.append(user_message)
            url = f"{self.base_url}/api/runChat"
            body = {
                "messages": [m.to_payload() for m in self.messages],
                "stream": True,
            }

        message = None
        try:
            response = self.http.post(url, json=body, stream=True, timeout=self.timeout)
            try:
                response.raise_for_status()
                self.consumer.attach()

                for chunk in response.iter_content(chunk_size=None):
                    message = self.consumer.feed(chunk)
                    if message is not None:
                        break
                if message is None:
                    message = self.consumer.finish()
            finally:
                response.close()

        except requests.exceptions.RequestException as e:
            self.consumer.fail(e)
            return None
        except BaseException as e:
            # Callback errors and Ctrl-C still leave the session able to send
            self.consumer.fail(e)
            raise

        if message is not None:
            self.messages.append(message)
        return message
