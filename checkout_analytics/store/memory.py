"""
In-Memory Event Store

Holds rows per tenant in process memory. Used by the test suite and for
local runs without a database.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from dateutil.parser import isoparse

from checkout_analytics.store.base import EventStore


def _row_timestamp(row: Mapping[str, Any]) -> Optional[datetime]:
    value = row.get("timestamp")
    if isinstance(value, str):
        try:
            value = isoparse(value)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class InMemoryEventStore(EventStore):
    """
    Event store over a dict of tenant -> rows.

    Rows without a readable timestamp or type are passed through unfiltered
    so the parsing layer sees them, the way a loosely-typed remote store
    would return them.
    """

    name = "memory"

    def __init__(self, rows: Optional[Mapping[str, Iterable[Mapping[str, Any]]]] = None):
        self._rows: Dict[str, List[Mapping[str, Any]]] = defaultdict(list)
        for account_id, account_rows in (rows or {}).items():
            self._rows[account_id].extend(account_rows)

    def add(self, account_id: str, *rows: Mapping[str, Any]) -> "InMemoryEventStore":
        self._rows[account_id].extend(rows)
        return self

    async def fetch_rows(
        self,
        account_id: str,
        event_types: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> List[Mapping[str, Any]]:
        wanted = set(event_types)
        selected = []
        for row in self._rows.get(account_id, ()):
            event_type = row.get("event_type", row.get("eventType"))
            timestamp = _row_timestamp(row)
            if event_type is None or timestamp is None:
                selected.append(row)
                continue
            if event_type in wanted and start <= timestamp < end:
                selected.append(row)
        return selected
