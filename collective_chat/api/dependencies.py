"""
FastAPI dependency providers

Shared collaborators are created once in the application lifespan and kept on
``app.state``; these providers hand them to routes and are the seams tests
override.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from collective_chat.auth.gate import AuthenticatedUser, AuthGate
from collective_chat.infra.database import Database
from collective_chat.llm.client import CompletionClient
from collective_chat.memory.directory_store import DirectoryStore
from collective_chat.memory.message_store import MessageStore
from collective_chat.services.chat_service import ChatService


def get_db(request: Request) -> Database:
    return request.app.state.database


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def get_completion_client(request: Request) -> CompletionClient:
    return request.app.state.completion_client


def get_message_store(database: Database = Depends(get_db)) -> MessageStore:
    return MessageStore(database)


def get_directory_store(database: Database = Depends(get_db)) -> DirectoryStore:
    return DirectoryStore(database)


def get_chat_service(
    message_store: MessageStore = Depends(get_message_store),
    directory: DirectoryStore = Depends(get_directory_store),
    completion_client: CompletionClient = Depends(get_completion_client),
) -> ChatService:
    return ChatService(message_store, directory, completion_client)


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    auth_gate: AuthGate = Depends(get_auth_gate),
) -> AuthenticatedUser:
    """Resolve the bearer credential; raises AuthError (401) otherwise."""
    return await auth_gate.authenticate(authorization)
