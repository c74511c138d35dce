"""Key-value store adapter.

The service keeps all shared state in an eventually-consistent key-value store
with last-writer-wins semantics. Only single-key get/put/delete are assumed to
be atomic; expiry of keys written with a TTL is the store's job.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from errors import CorruptRecordError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class KeyValueStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or ``None`` if absent or expired."""

    @abstractmethod
    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        ``ttl`` is a lifetime in seconds; ``None`` keeps the key until deleted.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting an absent key is not an error."""


class MemoryStore(KeyValueStore):
    """In-process store for local development and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be a positive number of seconds")
        expires_at = self._clock() + ttl if ttl is not None else None
        self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


def load_record(model: Type[RecordT], key: str, raw: Optional[str]) -> Optional[RecordT]:
    """Deserialize a stored record, rejecting anything that does not validate."""
    if raw is None:
        return None
    try:
        return model.model_validate_json(raw)
    except PydanticValidationError as exc:
        logger.error(f"Stored record '{key}' is not a valid {model.__name__} ({exc.error_count()} errors)")
        raise CorruptRecordError(f"Corrupt {model.__name__} record") from exc
