from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum

# Upper bound for text typed by a user. Prompts the server builds are not bound by it.
MAX_MESSAGE_LENGTH = 50000


class ChatMessageRole(str, Enum):
    """Chat message role enumeration"""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """Single chat message"""
    role: ChatMessageRole
    content: str = ""

    def to_payload(self) -> dict:
        """Wire shape expected by chat-completion providers"""
        return {"role": self.role.value, "content": self.content}


class IncomingMessage(ChatMessage):
    """Chat message as sent by a client"""
    # Emptiness of the latest message is checked by the service so that it
    # can answer 400 with the relay's own error body.
    content: str = Field(default="", max_length=MAX_MESSAGE_LENGTH)


class ChatRequest(BaseModel):
    """Chat relay request"""
    messages: List[IncomingMessage] = Field(..., description="Conversation history, oldest first")
    stream: bool = Field(default=False, description="Relay the answer as server-sent events")


class RagChatRequest(ChatRequest):
    """RAG relay request"""
    searchIndex: Optional[str] = Field(default=None, description="Vector collection to search")
    topK: int = Field(default=10, ge=1, le=100, description="Number of passages to retrieve")
