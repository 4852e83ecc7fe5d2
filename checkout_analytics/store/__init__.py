"""
Event Store Module
"""
from .base import EventStore
from .memory import InMemoryEventStore
from .postgres import PostgresEventStore

__all__ = [
    "EventStore",
    "InMemoryEventStore",
    "PostgresEventStore",
]
