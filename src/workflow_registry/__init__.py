"""Workflow store: protocol, DuckDB-backed and in-memory implementations."""

from __future__ import annotations

from workflow_registry.api import Store
from workflow_registry.duckdb_store import DuckDBStore
from workflow_registry.memory_store import MemoryStore

__all__ = ["DuckDBStore", "MemoryStore", "Store"]
