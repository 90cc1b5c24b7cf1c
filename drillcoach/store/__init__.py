"""
Record Store: keyed storage for user progression, sessions and the catalog.

Adapters:
- InMemoryRecordStore: process-local, lock guarded
- SqlRecordStore: SQLAlchemy (SQLite / PostgreSQL)
"""

from drillcoach.store.base import RecordStore, default_user_state
from drillcoach.store.memory import InMemoryRecordStore
from drillcoach.store.seed import build_demo_drill_pool

__all__ = [
    "InMemoryRecordStore",
    "RecordStore",
    "build_demo_drill_pool",
    "default_user_state",
]
