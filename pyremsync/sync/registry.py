"""Persistent mapping between source-native ids and stable target ids."""

import logging
import uuid
from collections.abc import Iterator
from typing import Generic, Optional, TypeVar

from ..exceptions import RemSyncConfigError
from ..store import RESERVED_KEYS, KeyValueStore

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class BijectiveMap(Generic[K, V]):
    """A one-to-one mapping that keeps its inverse in step.

    Every key maps to exactly one value and every value belongs to exactly
    one key. Rebinding either side raises instead of silently breaking the
    inverse.

    Examples:
        >>> m = BijectiveMap()
        >>> m.insert("a", 1)
        >>> m.inverse_get(1)
        'a'
    """

    def __init__(self) -> None:
        self._forward: dict[K, V] = {}
        self._inverse: dict[V, K] = {}

    def insert(self, key: K, value: V) -> None:
        """Bind ``key`` to ``value``.

        Re-inserting an existing pair is a no-op.

        Raises:
            ValueError: If the key or the value is already bound elsewhere
        """
        existing = self._forward.get(key)
        if existing is not None and existing != value:
            raise ValueError(f"Key {key!r} is already mapped to {existing!r}")
        owner = self._inverse.get(value)
        if owner is not None and owner != key:
            raise ValueError(f"Value {value!r} is already mapped from {owner!r}")
        self._forward[key] = value
        self._inverse[value] = key

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        return self._forward.get(key, default)

    def inverse_get(self, value: V, default: Optional[K] = None) -> Optional[K]:
        return self._inverse.get(value, default)

    def forward(self) -> dict[K, V]:
        """Return a copy of the forward mapping."""
        return dict(self._forward)

    def __contains__(self, key: object) -> bool:
        return key in self._forward

    def __len__(self) -> int:
        return len(self._forward)

    def __iter__(self) -> Iterator[K]:
        return iter(self._forward)


class IdentifierRegistry:
    """Assigns each source item a stable id that never changes.

    The mapping is loaded eagerly from the store and kept as an in-memory
    working copy. New ids are minted lazily on first encounter; nothing is
    written back until :meth:`persist` is called.
    """

    def __init__(self, store: KeyValueStore):
        """Load the registry.

        Args:
            store: Durable key-value store holding the forward mapping

        Raises:
            RemSyncConfigError: If the stored mapping is not one-to-one
        """
        self.store = store
        self._map: BijectiveMap[str, str] = BijectiveMap()
        self._dirty = False

        stored = store.load()
        for key in RESERVED_KEYS:
            stored.pop(key, None)
        try:
            for source_id, stable_id in stored.items():
                self._map.insert(source_id, stable_id)
        except ValueError as e:
            raise RemSyncConfigError(f"Stored id mapping is inconsistent: {e}") from e

        logger.debug(f"Loaded {len(self._map)} id mapping(s)")

    @property
    def dirty(self) -> bool:
        """True when ids were minted since the last persist."""
        return self._dirty

    def get_or_create(self, source_id: str) -> str:
        """Return the stable id for a source item, minting one if needed.

        Args:
            source_id: Source-native identifier

        Returns:
            Stable id (UUID v4 string)

        Raises:
            ValueError: If ``source_id`` is one of the reserved store keys
        """
        stable_id = self._map.get(source_id)
        if stable_id is not None:
            return stable_id

        if source_id in RESERVED_KEYS:
            raise ValueError(f"Source id {source_id!r} collides with a reserved key")

        stable_id = str(uuid.uuid4())
        self._map.insert(source_id, stable_id)
        self._dirty = True
        logger.debug(f"Minted stable id {stable_id} for source item {source_id}")
        return stable_id

    def lookup(self, source_id: str, default: Optional[str] = None) -> Optional[str]:
        """Return the stable id of a source item without minting one."""
        return self._map.get(source_id, default)

    def source_id_for(
        self, stable_id: str, default: Optional[str] = None
    ) -> Optional[str]:
        """Return the source id that owns a stable id."""
        return self._map.inverse_get(stable_id, default)

    def persist(self) -> bool:
        """Flush the complete forward mapping to the store.

        Pairing credentials kept in the same store are left untouched.

        Returns:
            True if the store was written, False if there was nothing new
        """
        if not self._dirty:
            logger.debug("Id mapping unchanged, nothing to persist")
            return False

        self.store.update(self._map.forward())
        self._dirty = False
        logger.info(f"Persisted {len(self._map)} id mapping(s)")
        return True

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._map
