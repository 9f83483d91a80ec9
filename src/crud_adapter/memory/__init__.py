"""In-memory record store."""

from __future__ import annotations

from .store import InMemoryRecordStore, MemoryQuery

__all__ = ["InMemoryRecordStore", "MemoryQuery"]
