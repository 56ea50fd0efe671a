"""
Pydantic models for the chat API contract

Wire names are camelCase to match the browser client.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ChatCompletionRequest(BaseModel):
    """Body of POST /api/chat/completion"""
    conversation_id: Optional[str] = Field(
        default=None,
        alias="conversationId",
        description="Existing conversation to continue; omitted to start a new one",
    )
    message: str = Field(
        ...,
        min_length=1,
        description="The user's message",
    )
    conversation_type: Literal["service_assistant", "sales_assistant"] = Field(
        ...,
        alias="conversationType",
        description="Assistant mode the client believes it is talking to",
    )

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "conversationId": None,
                    "message": "Need a plumber for a leaking sink",
                    "conversationType": "service_assistant",
                }
            ]
        },
    }

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class ConversationOut(BaseModel):
    id: str
    title: str
    conversation_type: str = Field(..., alias="conversationType")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    last_message_at: Optional[datetime] = Field(default=None, alias="lastMessageAt")

    model_config = {"populate_by_name": True}


class ConversationListResponse(BaseModel):
    conversations: List[ConversationOut]


class MessageOut(BaseModel):
    id: str
    conversation_id: str = Field(..., alias="conversationId")
    role: Literal["user", "assistant"]
    content: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    tokens_used: Optional[int] = Field(default=None, alias="tokensUsed")

    model_config = {"populate_by_name": True}


class MessageListResponse(BaseModel):
    conversation: ConversationOut
    messages: List[MessageOut]


class ModeResponse(BaseModel):
    """Assistant mode detected for the caller"""
    conversation_type: Literal["service_assistant", "sales_assistant"] = Field(
        ..., alias="conversationType"
    )

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    """
    Health check response

    Attributes:
        status: Service health status
        service: Service name
        version: API version
        database: Whether the store answered a ping
    """
    status: str = Field(..., description="Health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="API version")
    database: bool = Field(..., description="Store reachable")
