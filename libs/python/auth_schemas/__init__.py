"""Shared schema exports."""

from .account import AccountProfile
from .session import MessageData, MessageEnvelope, SessionData, SessionEnvelope, SessionUser

__all__ = [
    "AccountProfile",
    "MessageData",
    "MessageEnvelope",
    "SessionData",
    "SessionEnvelope",
    "SessionUser",
]
