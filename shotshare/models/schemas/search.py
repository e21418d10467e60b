"""Search Pydantic schemas."""
from typing import List, Literal

from pydantic import BaseModel, Field

from .post import PostResponse


class ConversationMessage(BaseModel):
    """One prior turn of a search conversation."""

    role: Literal["user", "model"]
    parts: str = Field(..., description="Turn text")


class SearchRequest(BaseModel):
    """Free-text search, optionally continuing a conversation."""

    query: str = Field(..., min_length=1, max_length=2000, description="Search query")
    conversation_history: List[ConversationMessage] = Field(
        default_factory=list,
        alias="conversationHistory",
        description="Prior turns, oldest first"
    )

    class Config:
        populate_by_name = True


class SearchResponse(BaseModel):
    """Non-streaming search result."""

    posts: List[PostResponse]
    ai_response: str
    conversation_id: str
    fallback: bool = Field(default=False, description="True when no posts were attributed")
