"""
Chat service - runs the server side of one assistant turn up to the point
where the upstream stream is open and ready to relay.
"""

from dataclasses import dataclass
from typing import AsyncIterator, Optional, Tuple

import httpx
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from collective_chat.llm.client import CompletionClient
from collective_chat.llm.prompts import ComposedPrompt, PromptComposer
from collective_chat.memory.directory_store import DirectoryStore
from collective_chat.memory.message_store import MessageStore
from collective_chat.models.domain import Conversation, ConversationMode
from collective_chat.services.classifier import UserClassifier
from collective_chat.services.context_builder import ContextBuilder
from collective_chat.services.conversation_resolver import ConversationResolver
from collective_chat.streaming.cancellation import CancellationToken
from collective_chat.streaming.relay import StreamRelay


@dataclass
class ChatTurn:
    """An accepted turn whose upstream stream is open"""
    conversation: Conversation
    relay: StreamRelay
    upstream: httpx.Response

    def events(self) -> AsyncIterator[str]:
        return self.relay.stream(self.upstream)


class ChatService:
    """
    Sequence the pre-stream steps of a turn:

    classify -> resolve conversation + store user message -> build context
    -> compose prompt -> open upstream stream.

    Anything that fails here raises before a byte is streamed, so the caller
    can still answer with a JSON error. The user message is stored before the
    upstream call and is never rolled back.
    """

    def __init__(
        self,
        message_store: MessageStore,
        directory: DirectoryStore,
        completion_client: CompletionClient,
    ):
        self.store = message_store
        self.classifier = UserClassifier(directory)
        self.context_builder = ContextBuilder(directory)
        self.resolver = ConversationResolver(message_store)
        self.composer = PromptComposer(message_store)
        self.completion_client = completion_client

    def prepare_turn(
        self,
        user_id: str,
        message: str,
        conversation_id: Optional[str] = None,
        requested_mode: Optional[ConversationMode] = None,
    ) -> Tuple[Conversation, ComposedPrompt]:
        """Store-bound steps of a turn. Blocking; run off the event loop."""
        mode = self.classifier.classify(user_id)
        if requested_mode is not None and requested_mode != mode and not conversation_id:
            logger.debug(
                f"Client requested {requested_mode.value} but user={user_id} classifies as {mode.value}; "
                f"using {mode.value}"
            )

        conversation = self.resolver.resolve(
            user_id=user_id,
            message=message,
            mode=mode,
            conversation_id=conversation_id,
        )

        context = self.context_builder.build(user_id, conversation.mode)
        return conversation, self.composer.compose(conversation, context)

    async def start_turn(
        self,
        user_id: str,
        message: str,
        conversation_id: Optional[str] = None,
        requested_mode: Optional[ConversationMode] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ChatTurn:
        conversation, prompt = await run_in_threadpool(
            self.prepare_turn, user_id, message, conversation_id, requested_mode
        )

        upstream = await self.completion_client.open_stream(prompt.system_prompt, prompt.history)
        relay = StreamRelay(self.store, conversation.id, cancel_token=cancel_token)
        return ChatTurn(conversation=conversation, relay=relay, upstream=upstream)
