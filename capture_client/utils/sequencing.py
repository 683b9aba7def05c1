"""
Sequence numbers for overlapping requests.

Every outgoing request takes the next number. A response is applied only
if its number is higher than the highest one applied so far, so a slow
response can never overwrite the result of a newer request.
"""

import threading


class RequestSequencer:
    """Issues request numbers and filters stale responses."""

    def __init__(self):
        self._lock = threading.Lock()
        self._issued = 0
        self._applied = 0

    def next(self) -> int:
        """Reserve the number for a new request."""
        with self._lock:
            self._issued += 1
            return self._issued

    def accept(self, sequence: int) -> bool:
        """Record a response as applied if it is newer than any applied so far.

        Returns:
            True if the caller should apply the response, False if it is stale.
        """
        with self._lock:
            if sequence <= self._applied:
                return False
            self._applied = sequence
            return True

    @property
    def latest_issued(self) -> int:
        return self._issued

    @property
    def latest_applied(self) -> int:
        return self._applied

    @property
    def has_pending(self) -> bool:
        """True while the newest request has not been answered."""
        return self._applied < self._issued

    def invalidate(self) -> None:
        """Treat every request issued so far as answered, so none of them applies."""
        with self._lock:
            self._applied = self._issued
