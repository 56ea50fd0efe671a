"""
Authentication - bearer credential validation
"""

from collective_chat.auth.gate import (
    AuthGate,
    AuthenticatedUser,
    StaticTokenAuthGate,
    SupabaseAuthGate,
    extract_bearer,
)

__all__ = [
    "AuthGate",
    "AuthenticatedUser",
    "StaticTokenAuthGate",
    "SupabaseAuthGate",
    "extract_bearer",
]
