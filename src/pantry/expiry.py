"""
Expiry policy: lazy, access-triggered eviction.

A key moves absent -> valid on write, valid -> expired when the clock passes
its `expires`, and expired -> absent the next time it is read (the record is
deleted from both roots). Nothing sweeps in the background.
"""

from __future__ import annotations

from pantry.codec import RecordCodec
from pantry.logging import get_logger
from pantry.types import Envelope, RecordState

logger = get_logger(__name__)


class ExpiryPolicy:
    """Validates envelopes against the clock and evicts expired records."""

    def __init__(self, codec: RecordCodec) -> None:
        self.codec = codec

    def now(self) -> float:
        """Current epoch time from the codec's clock."""
        return self.codec.clock()

    @staticmethod
    def is_valid(envelope: Envelope, now: float) -> bool:
        """True if `expires` is absent (records older than expiry support) or in the future."""
        return envelope.is_valid_at(now)

    def state(self, envelope: Envelope | None, now: float) -> RecordState:
        """Lifecycle state of a loaded envelope."""
        if envelope is None:
            return RecordState.ABSENT
        return RecordState.VALID if self.is_valid(envelope, now) else RecordState.EXPIRED

    def check_and_evict(
        self, key: str, envelope: Envelope, now: float | None = None
    ) -> Envelope | None:
        """Return the envelope if still valid; otherwise delete the key everywhere.

        Args:
            key: The cache key the envelope was loaded for.
            envelope: The loaded envelope.
            now: Epoch time to check against; defaults to the clock.

        Returns:
            The envelope, or None once it has been evicted.
        """
        if now is None:
            now = self.now()
        if self.is_valid(envelope, now):
            return envelope

        logger.debug("Evicting expired record", key=key, expires=envelope.expires, now=now)
        self.codec.remove(key)
        return None
