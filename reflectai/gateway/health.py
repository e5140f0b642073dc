"""Health Prober + Cache — how many primary credentials are usable right now.

A sweep sends one minimal generation request per credential, sequentially,
each with a hard timeout, and counts working / quota-exceeded / failed
keys. ``available`` means "configured and not catastrophically broken":
working > 0 or quota_exceeded > 0.

Sweeps are expensive and quota-consuming, so results are cached for
``cache_seconds`` (10 minutes by default). Only one sweep runs at a time:
concurrent callers wait on the lock and then get the fresh cached snapshot.
Probes are not counted by the generation rate limiter.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Callable

from reflectai.core.metrics import AI_HEALTH_SWEEPS
from reflectai.gateway.credentials import CredentialRotator
from reflectai.gateway.primary import HEALTH_PROBE_TIMEOUT, GeminiClient
from reflectai.gateway.types import HealthSnapshot, ProbeOutcome

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SECONDS = 10 * 60


class HealthProber:
    """Cached, single-flight health sweeps over the credential set."""

    def __init__(
        self,
        rotator: CredentialRotator,
        client: GeminiClient,
        cache_seconds: float = DEFAULT_CACHE_SECONDS,
        probe_timeout: float = HEALTH_PROBE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rotator = rotator
        self.client = client
        self.cache_seconds = cache_seconds
        self.probe_timeout = probe_timeout
        self._clock = clock
        self._cached: HealthSnapshot | None = None
        self._cached_at: float = 0.0
        self._lock = asyncio.Lock()
        self.sweep_count = 0

    def _fresh_cached(self) -> HealthSnapshot | None:
        """Cached snapshot marked as such, or None when missing/stale."""
        if self._cached is None:
            return None
        age = self._clock() - self._cached_at
        if age >= self.cache_seconds:
            return None
        return dataclasses.replace(self._cached, is_cached=True, cache_age_seconds=int(age))

    async def check_health(self, force: bool = False) -> HealthSnapshot:
        """Return the cached snapshot if fresh, otherwise run one sweep."""
        if not force:
            cached = self._fresh_cached()
            if cached is not None:
                logger.debug("Using cached health check result (%ds old)", cached.cache_age_seconds)
                return cached

        async with self._lock:
            # Another caller may have finished a sweep while we waited
            if not force:
                cached = self._fresh_cached()
                if cached is not None:
                    return cached

            snapshot = await self._sweep()
            self._cached = snapshot
            self._cached_at = self._clock()
            return snapshot

    async def _sweep(self) -> HealthSnapshot:
        credentials = self.rotator.credentials
        self.sweep_count += 1
        AI_HEALTH_SWEEPS.inc()

        if not credentials:
            return HealthSnapshot(available=False, error="No API keys configured")

        logger.info("Testing %d API keys (fresh check)...", len(credentials))

        counts = {outcome: 0 for outcome in ProbeOutcome}
        last_error = ""
        for index, credential in enumerate(credentials):
            outcome, error = await self._probe(index, credential)
            counts[outcome] += 1
            if error:
                last_error = error

        working = counts[ProbeOutcome.WORKING]
        quota = counts[ProbeOutcome.QUOTA_EXCEEDED]
        failed = counts[ProbeOutcome.FAILED]
        logger.info(
            "Health check complete: %d working, %d quota exceeded, %d failed",
            working,
            quota,
            failed,
        )

        return HealthSnapshot(
            working_keys=working,
            quota_exceeded=quota,
            failed_keys=failed,
            total_keys=len(credentials),
            available=working > 0 or quota > 0,
            error=last_error if working == 0 and quota == 0 else None,
        )

    async def _probe(self, index: int, credential: str) -> tuple[ProbeOutcome, str]:
        """Probe one credential; never raises."""
        try:
            result = await asyncio.wait_for(
                self.client.probe(credential, timeout=self.probe_timeout),
                timeout=self.probe_timeout + 1.0,
            )
        except asyncio.TimeoutError:
            logger.warning("API key #%d failed: Health check timeout", index + 1)
            return ProbeOutcome.FAILED, "Health check timeout"
        except Exception as e:
            logger.warning("API key #%d failed: %s", index + 1, e)
            return ProbeOutcome.FAILED, str(e)

        if result.ok:
            logger.info("API key #%d working", index + 1)
            return ProbeOutcome.WORKING, ""
        if result.quota_exceeded:
            logger.warning("API key #%d quota exceeded", index + 1)
            return ProbeOutcome.QUOTA_EXCEEDED, result.error_message
        logger.warning("API key #%d failed: %s", index + 1, result.error_message)
        return ProbeOutcome.FAILED, result.error_message

    def get_cached(self) -> HealthSnapshot | None:
        """Last snapshot with cache markers, regardless of age."""
        if self._cached is None:
            return None
        age = self._clock() - self._cached_at
        return dataclasses.replace(self._cached, is_cached=True, cache_age_seconds=int(age))

    def clear_cache(self) -> None:
        self._cached = None
        self._cached_at = 0.0
        logger.info("Health check cache cleared")
