"""
User classifier - picks the assistant mode for a user.
"""

from loguru import logger

from collective_chat.memory.directory_store import DirectoryStore
from collective_chat.models.domain import ConversationMode


class UserClassifier:
    """
    Map directory state to a conversation mode.

    Business operators (at least one owned business) get the sales
    assistant; everyone else gets the service assistant. The message content
    plays no part in the decision.
    """

    def __init__(self, directory: DirectoryStore):
        self.directory = directory

    def classify(self, user_id: str) -> ConversationMode:
        """
        Classify a user. Never raises: a failed lookup falls back to
        SERVICE_ASSISTANT so the conversation can proceed.
        """
        try:
            owns_business = self.directory.owns_business(user_id)
        except Exception as e:
            logger.warning(f"User classification failed for user={user_id}, defaulting to service_assistant: {e}")
            return ConversationMode.SERVICE_ASSISTANT

        mode = ConversationMode.SALES_ASSISTANT if owns_business else ConversationMode.SERVICE_ASSISTANT
        logger.debug(f"Classified user={user_id} as {mode.value}")
        return mode
