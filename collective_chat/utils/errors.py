"""
Custom error classes for the application

Every error raised by the chat pipeline derives from ChatError and carries the
HTTP status it maps to when it escapes before a stream has been opened.
"""

from typing import Optional


class ChatError(Exception):
    """Base exception for chat pipeline errors"""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class AuthError(ChatError):
    """Missing, malformed or rejected bearer credential"""
    status_code = 401


class ValidationError(ChatError):
    """Request body failed validation"""
    status_code = 400


class NotFoundError(ChatError):
    """Referenced conversation does not exist"""
    status_code = 404


class ForbiddenError(ChatError):
    """Conversation belongs to another user"""
    status_code = 403


class UpstreamError(ChatError):
    """LLM provider returned a non-success status or the stream broke"""
    status_code = 502

    def __init__(self, message: str = "", upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class PersistenceError(ChatError):
    """Store read or write failed"""
    status_code = 500


class MalformedFrameError(ChatError):
    """A single SSE data payload could not be parsed (non-fatal, skipped)"""


class StreamInterruptedError(ChatError):
    """Event stream ended without a terminal frame"""
    status_code = 502
