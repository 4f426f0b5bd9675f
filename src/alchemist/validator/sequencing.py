# src/alchemist/validator/sequencing.py
from __future__ import annotations

import logging
import threading

from alchemist.schemas.models import ValidationSummary

logger = logging.getLogger(__name__)


class ValidationSequencer:
    """
    @brief
    Latest-wins bookkeeping for repeated validation runs.

    @details
    Every trigger takes a monotonically increasing request number from
    next_request(). When a run completes, submit() accepts its summary only
    if no newer request has been issued since; older results are dropped.
    The lock lets background workers submit while the caller issues new
    requests.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._issued = 0
        self._accepted_seq = 0
        self._latest: ValidationSummary | None = None
        self.dropped = 0

    def next_request(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def submit(self, seq: int, summary: ValidationSummary) -> bool:
        """Store `summary` if `seq` is the newest issued request; return whether it was kept."""
        with self._lock:
            if seq != self._issued or seq <= self._accepted_seq:
                self.dropped += 1
                logger.debug("Dropping stale validation result #%d (latest #%d)", seq, self._issued)
                return False
            self._accepted_seq = seq
            self._latest = summary
            return True

    @property
    def latest(self) -> ValidationSummary | None:
        with self._lock:
            return self._latest

    @property
    def latest_seq(self) -> int:
        with self._lock:
            return self._accepted_seq


__all__ = ["ValidationSequencer"]
