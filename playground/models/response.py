from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any, Union

from playground.models.request import ChatMessage


class SearchPayload(BaseModel):
    """Payload stored alongside a vector; pageContent is the passage text"""
    pageContent: str = Field(default="", description="Retrieved passage text")

    model_config = ConfigDict(extra="allow")


class SearchPoint(BaseModel):
    """Single vector search match"""
    id: Union[str, int] = Field(..., description="Point identifier in the collection")
    score: float = Field(..., description="Similarity score reported by the index")
    payload: SearchPayload = Field(default_factory=SearchPayload)


class SearchResult(BaseModel):
    """Matches returned by the vector index, closest first"""
    points: List[SearchPoint] = Field(default_factory=list)

    def page_contents(self) -> List[str]:
        return [point.payload.pageContent for point in self.points]


class ChatResponse(BaseModel):
    """Non-streaming chat relay response"""
    message: ChatMessage

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": {"role": "assistant", "content": "2 + 2 = 4."}
            }
        }
    )


class RagChatResponse(ChatResponse):
    """Non-streaming RAG relay response"""
    prompt: str = Field(..., description="Prompt sent to the model")
    searchResult: SearchResult = Field(..., description="Passages the prompt was built from")


class ErrorResponse(BaseModel):
    """Error body returned with 4xx/5xx statuses"""
    output: str = Field(..., description="Error message")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"output": "Message content cannot be empty"}
        }
    )


class CollectionsResponse(BaseModel):
    """Vector collections available for RAG"""
    collections: List[str] = Field(default_factory=list)


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="ok or degraded")
    vector_store: Optional[Dict[str, Any]] = Field(None, description="Vector store status")
    model_name: Optional[str] = Field(None, description="Configured chat model")
