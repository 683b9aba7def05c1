"""
Client-side model of the admin license list.

Refreshes can overlap (a toggle triggers one while a manual refresh is
still running), so each refresh takes a sequence number and only the
newest applied result is kept.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .sequencing import RequestSequencer

logger = logging.getLogger(__name__)


def format_timestamp(value: Optional[str]) -> str:
    """Render an ISO timestamp from the API as 'YYYY-MM-DD HH:MM', or '' if absent."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M")


class LicenseListing:
    """Rows shown in the admin window."""

    def __init__(self):
        self.rows: List[Dict[str, Any]] = []
        self.error: Optional[str] = None
        self._sequencer = RequestSequencer()

    def begin_refresh(self) -> int:
        return self._sequencer.next()

    def apply(self, sequence: int, rows: List[Dict[str, Any]]) -> bool:
        if not self._sequencer.accept(sequence):
            logger.debug(f"Dropping stale license list #{sequence}")
            return False
        self.rows = list(rows)
        self.error = None
        return True

    def fail(self, sequence: int, message: str) -> bool:
        if not self._sequencer.accept(sequence):
            return False
        self.error = message
        return True

    @property
    def is_loading(self) -> bool:
        return self._sequencer.has_pending

    def find(self, license_id: int) -> Optional[Dict[str, Any]]:
        for row in self.rows:
            if row.get("id") == license_id:
                return row
        return None
