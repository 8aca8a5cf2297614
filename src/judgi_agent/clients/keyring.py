"""Round-robin API key ring, one instance per external service."""

from __future__ import annotations

import os
from collections.abc import Iterable

import structlog

from judgi_agent.config import split_keys
from judgi_agent.errors import ConfigurationError

logger = structlog.get_logger(__name__)


class KeyRing:
    """Ordered credentials plus the index of the active one.

    Rotation is a plain mutation with no locking. Callers sharing a ring may
    interleave rotations; the worst outcome is a key used out of turn.
    """

    def __init__(self, keys: Iterable[str], *, service: str) -> None:
        self._keys = list(keys)
        self._active_index = 0
        self.service = service

    @classmethod
    def from_env(cls, var: str, *, service: str) -> "KeyRing":
        return cls(split_keys(os.getenv(var, "")), service=service)

    @property
    def active_index(self) -> int:
        return self._active_index

    def current(self) -> str:
        if not self._keys:
            raise ConfigurationError(f"No {self.service} API keys configured.")
        return self._keys[self._active_index]

    def rotate(self) -> None:
        if not self._keys:
            raise ConfigurationError(f"No {self.service} API keys configured.")
        self._active_index = (self._active_index + 1) % len(self._keys)
        logger.warning("api_key_rotated", service=self.service, index=self._active_index)
        if self._active_index == 0:
            logger.error(
                "api_key_ring_wrapped",
                service=self.service,
                size=len(self._keys),
                hint="all keys tried; global rate limit or exhausted quota",
            )

    def size(self) -> int:
        return len(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"KeyRing(service={self.service!r}, size={len(self._keys)}, active_index={self._active_index})"
