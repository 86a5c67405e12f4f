"""In-memory implementations of the store of record and the directory."""

from project_governance.infrastructure.directory import DirectoryUnavailable, InMemoryDirectory
from project_governance.infrastructure.event_store import InMemoryProjectStore

__all__ = ["DirectoryUnavailable", "InMemoryDirectory", "InMemoryProjectStore"]
