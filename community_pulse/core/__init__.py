"""Shared primitives for Community Pulse."""

from .models import AI_AGENT, USERS, Message, User, find_user
from .randomness import RandomSource, default_random

__all__ = [
    "AI_AGENT",
    "Message",
    "RandomSource",
    "USERS",
    "User",
    "default_random",
    "find_user",
]
