"""Credential Rotator — circular rotation over primary-provider API keys.

Holds the ordered list of credentials, the index of the one in use and a
cooldown timestamp per credential:
  - mark_exceeded(): current key cools down for ``cooldown_seconds``
  - rotate(): move to the next key whose cooldown has expired, scanning
    circularly from just after the current index; one full circle at most
  - mark_success(): forget an expired cooldown after a fresh successful call

Keys are never logged; operators see 1-based key numbers only.

Methods are synchronous and guarded by a threading.Lock, so the index and
the cooldown map are consistent whether callers are tasks or threads.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from reflectai.gateway.types import CredentialStatus

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 15 * 60


class CredentialRotator:
    """Ordered credential set with a current pointer and per-key cooldowns.

    Usage:
        rotator = CredentialRotator(["key-1", "key-2"])

        key = rotator.current_credential()
        ...
        # Provider reported quota exhaustion:
        rotator.mark_exceeded()
        if not rotator.rotate():
            # every key is cooling down
            ...
    """

    def __init__(
        self,
        credentials: Sequence[str],
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._credentials: list[str] = [c for c in credentials if c]
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._index = 0
        self._cooldowns: dict[int, float] = {}  # index -> epoch seconds
        self._lock = threading.Lock()

        if self._credentials:
            logger.info("Loaded %d primary API keys for rotation", len(self._credentials))
        else:
            logger.warning("No primary API keys configured — primary provider disabled")

    def __len__(self) -> int:
        return len(self._credentials)

    @property
    def credentials(self) -> tuple[str, ...]:
        return tuple(self._credentials)

    @property
    def current_index(self) -> int:
        return self._index

    def _is_available(self, index: int, now: float) -> bool:
        cooldown_until = self._cooldowns.get(index)
        return cooldown_until is None or now > cooldown_until

    def current_credential(self) -> str | None:
        """The credential in use, or None when the set is empty."""
        with self._lock:
            if not self._credentials:
                return None
            return self._credentials[self._index]

    def is_available(self, index: int) -> bool:
        with self._lock:
            return self._is_available(index, self._clock())

    def current(self) -> tuple[int, str] | None:
        """(index, credential) read together, or None when the set is empty."""
        with self._lock:
            if not self._credentials:
                return None
            return self._index, self._credentials[self._index]

    def mark_exceeded(self, index: int | None = None) -> None:
        """Put a credential (the current one by default) on cooldown."""
        with self._lock:
            if not self._credentials:
                return
            index = self._index if index is None else index
            until = self._clock() + self.cooldown_seconds
            self._cooldowns[index] = until
            logger.warning(
                "API key #%d marked as quota exceeded until %s",
                index + 1,
                datetime.fromtimestamp(until, tz=timezone.utc).strftime("%H:%M:%S"),
            )

    def mark_success(self, index: int | None = None) -> None:
        """Clear an expired cooldown after a successful call."""
        with self._lock:
            if not self._credentials:
                return
            index = self._index if index is None else index
            if index in self._cooldowns and self._is_available(index, self._clock()):
                del self._cooldowns[index]

    def rotate(self) -> bool:
        """Advance to the next credential whose cooldown has expired.

        Returns False, leaving the index unchanged, when a full circle finds
        no available credential.
        """
        with self._lock:
            return self._rotate_locked()

    def _rotate_locked(self) -> bool:
        size = len(self._credentials)
        if size == 0:
            return False

        now = self._clock()
        for step in range(1, size):
            candidate = (self._index + step) % size
            if self._is_available(candidate, now):
                self._index = candidate
                logger.info("Rotating to API key #%d", candidate + 1)
                return True

        logger.warning("All API keys are in cooldown")
        return False

    def ensure_available(self) -> bool:
        """True when the current credential may be used right now.

        If the current credential is cooling down, tries to rotate to one
        that is not. Returns False for an empty set or when every credential
        is cooling down.
        """
        with self._lock:
            if not self._credentials:
                return False
            if self._is_available(self._index, self._clock()):
                return True
            return self._rotate_locked()

    def available_count(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for i in range(len(self._credentials)) if self._is_available(i, now))

    def status(self) -> list[CredentialStatus]:
        """Per-credential availability for observability."""
        with self._lock:
            now = self._clock()
            statuses = []
            for i in range(len(self._credentials)):
                cooldown_until = self._cooldowns.get(i)
                statuses.append(
                    CredentialStatus(
                        index=i + 1,
                        available=self._is_available(i, now),
                        cooldown_until=(
                            datetime.fromtimestamp(cooldown_until, tz=timezone.utc) if cooldown_until else None
                        ),
                    )
                )
            return statuses

    def reset(self) -> None:
        """Clear every cooldown and point back at the first credential."""
        with self._lock:
            self._cooldowns.clear()
            self._index = 0
            logger.info("Credential rotator manually RESET")
