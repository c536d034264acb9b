"""
Identity provider interface.

Token verification is delegated to the provider; the engine only consumes the
resolved Identity.
"""

from __future__ import annotations

from typing import Protocol

from src.domain.entities import Identity


class IdentityProviderPort(Protocol):
    async def verify_token(self, bearer_token: str) -> Identity | None:
        """Return the caller identity, or None for an invalid or expired token."""
        ...
