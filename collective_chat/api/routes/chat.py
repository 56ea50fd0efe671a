"""
Chat completion endpoint using Server-Sent Events (SSE)

The browser posts one user message and receives the assistant reply as a
stream of ``data: <json>`` frames.
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from collective_chat.api.dependencies import (
    get_chat_service,
    get_current_user,
    get_directory_store,
)
from collective_chat.api.models import ChatCompletionRequest, ErrorResponse, ModeResponse
from collective_chat.auth.gate import AuthenticatedUser
from collective_chat.config.constants import SSE_HEADERS
from collective_chat.memory.directory_store import DirectoryStore
from collective_chat.models.domain import ConversationMode
from collective_chat.services.chat_service import ChatService
from collective_chat.services.classifier import UserClassifier
from collective_chat.streaming.cancellation import CancellationToken
from collective_chat.utils.errors import ValidationError


router = APIRouter(prefix="/api/chat", tags=["chat"])


async def parse_completion_request(request: Request) -> ChatCompletionRequest:
    """Validate the JSON body. Runs only after authentication succeeded."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError("Request body must be valid JSON") from e

    try:
        return ChatCompletionRequest.model_validate(payload)
    except PydanticValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise ValidationError(f"Missing or invalid fields: {', '.join(fields)}") from e


@router.post(
    "/completion",
    responses={
        200: {"content": {"text/event-stream": {}}, "description": "SSE stream of reply frames"},
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def chat_completion(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Streaming chat completion

    **Request:**
    ```json
    {
      "conversationId": "conv-uuid-123",
      "message": "Need a plumber for a leaking sink",
      "conversationType": "service_assistant"
    }
    ```

    **Response:** `text/event-stream` with frames

    1. **text** - incremental reply text (zero or more)
    ```
    data: {"text": "I can help"}
    ```

    2. **persistenceError** - reply was streamed but could not be stored
    ```
    data: {"persistenceError": "Assistant reply could not be saved"}
    ```

    3. **done** - terminal frame, exactly one on success
    ```
    data: {"done": true, "conversationId": "conv-uuid-123"}
    ```

    4. **error** - upstream failed mid-stream; no done frame follows
    ```
    data: {"error": "Upstream stream interrupted"}
    ```

    Failures before streaming starts (auth, validation, unknown conversation,
    provider rejection) return a JSON `{"error": ...}` body instead.
    """
    body = await parse_completion_request(request)

    logger.info(
        f"Chat request - user={user.id}, "
        f"conversation={body.conversation_id or 'new'}, "
        f"type={body.conversation_type}"
    )
    logger.debug(f"Message: {body.message[:100]}...")

    turn = await chat_service.start_turn(
        user_id=user.id,
        message=body.message,
        conversation_id=body.conversation_id,
        requested_mode=ConversationMode(body.conversation_type),
        cancel_token=CancellationToken(),
    )

    return StreamingResponse(
        turn.events(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/mode", response_model=ModeResponse)
def detect_mode(
    user: AuthenticatedUser = Depends(get_current_user),
    directory: DirectoryStore = Depends(get_directory_store),
):
    """Assistant mode for the caller: sales for business owners, service otherwise."""
    mode = UserClassifier(directory).classify(user.id)
    return ModeResponse(conversation_type=mode.value)
