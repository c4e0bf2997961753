"""Errors raised by OAuth operations and the shared types providers work with."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class AuthError(Exception):
    """Base class for failures during OAuth operations."""

    default_message = "authentication error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)


class InvalidCredentialsError(AuthError):
    """The supplied client or user credentials were rejected."""

    default_message = "invalid credentials"


class TokenExpiredError(AuthError):
    """The token has expired and cannot be used or refreshed."""

    default_message = "token expired"


class TokenExchangeFailedError(AuthError):
    """Exchanging an authorization code for a token failed."""

    default_message = "token exchange failed"


class ProviderError(AuthError):
    """The OAuth provider or a backing service reported a failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class RateLimitedError(AuthError):
    """The request was refused by rate limiting."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


@dataclass
class UserInfo:
    """Basic user information fetched from an OAuth provider."""

    user_id: str
    username: str
    email: Optional[str] = None


class RateLimiter(ABC):
    """Interface for simple rate-limiting logic."""

    @abstractmethod
    def check(self, key: str) -> bool:
        """Return True if ``key`` may perform another action."""

    @abstractmethod
    def record(self, key: str) -> None:
        """Record an action performed by ``key``."""