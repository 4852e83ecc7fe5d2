"""
PostgreSQL Event Store

Reads events through the ``get_analytics_events_by_types`` SQL function
(configurable), which takes the tenant, event types and window bounds.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog
from sqlalchemy import bindparam, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.types import DateTime, String

from checkout_analytics.config import get_settings
from checkout_analytics.database.connection import check_database_health, get_db
from checkout_analytics.store.base import EventStore

logger = structlog.get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


class PostgresEventStore(EventStore):
    """
    Event store backed by a PostgreSQL function.

    Example:
        store = PostgresEventStore()
        events = await store.fetch_events("acct-1", ["checkout_start"], start, end)
    """

    name = "postgres"

    def __init__(self, function_name: Optional[str] = None):
        function_name = function_name or get_settings().database.events_function
        if not _IDENTIFIER.match(function_name):
            raise ValueError(f"Invalid events function name: {function_name!r}")
        self.function_name = function_name

        self._query = text(
            f"SELECT * FROM {self.function_name}("
            ":p_customer_id, :p_event_types, :p_start_date, :p_end_date)"
        ).bindparams(
            bindparam("p_customer_id", type_=String),
            bindparam("p_event_types", type_=ARRAY(String)),
            bindparam("p_start_date", type_=DateTime(timezone=True)),
            bindparam("p_end_date", type_=DateTime(timezone=True)),
        )

    async def fetch_rows(
        self,
        account_id: str,
        event_types: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> List[Mapping[str, Any]]:
        async with get_db() as db:
            result = await db.execute(
                self._query,
                {
                    "p_customer_id": account_id,
                    "p_event_types": list(event_types),
                    "p_start_date": start,
                    "p_end_date": end,
                },
            )
            rows: List[Dict[str, Any]] = [dict(row) for row in result.mappings().all()]

        return rows

    async def health(self) -> dict:
        return await check_database_health()
