"""Archive stores and lookup decorators."""

from recspine.storage.memory import InMemoryArchive
from recspine.storage.retrying import RetryingRecordLookup

__all__ = ["InMemoryArchive", "RetryingRecordLookup"]
